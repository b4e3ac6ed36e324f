"""Command-line interface for Voicecast.

Responsibilities:
- Serve the HTTP API through uvicorn.
- Run the speech and podcast pipelines locally without the HTTP layer.
- Manage provider API keys in secure credential storage.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Annotated, Optional

from keyring.errors import KeyringError
import typer
import uvicorn

from .api.app import create_app
from .audio.materializer import AudioMaterializer
from .audio.storage import AudioStore
from .cli_rendering import (
    echo_credential_status,
    echo_progress,
    echo_project_summary,
    exit_with_command_error,
)
from .config import (
    AVAILABLE_VOICES,
    ConfigLoader,
    ProviderApiKeys,
    RuntimeConfigSources,
    VoicecastConfig,
)
from .credentials import CREDENTIAL_PROVIDERS, create_credential_store
from .errors import AudioStorageError, InputValidationError, PipelineStageError, ProviderError
from .models.datatypes import ProjectState, ProjectStatus
from .parsing import normalize_optional_string
from .pipeline.executor import PipelineExecutor
from .providers.factory import ProviderFactory, ProviderSet
from .services.podcast import PodcastProjectManager
from .telemetry.logger import configure_logging

app = typer.Typer(
    name="voicecast",
    no_args_is_help=True,
    help="Voicecast CLI.",
)

_POLL_INTERVAL_SECONDS = 0.5


def _load_config(config_path: Path | None) -> VoicecastConfig:
    """Load YAML config when requested, else `VOICECAST_*` variables, as stage errors."""

    if config_path is None:
        try:
            return ConfigLoader.from_env()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=f"Invalid environment configuration: {exc}",
                hint="Fix or unset the offending `VOICECAST_*` variable.",
            ) from exc
    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _resolve_api_keys(config: VoicecastConfig, api_key: str | None = None) -> ProviderApiKeys:
    """Resolve keys from `--api-key` (completion provider), keyring, env, then config."""

    cli_values: dict[str, str] = {}
    normalized = normalize_optional_string(api_key)
    if normalized is not None:
        cli_values[config.provider_completion] = normalized
    store = create_credential_store()
    try:
        secure_values = store.load_all() if store.is_available() else {}
    except KeyringError as exc:
        raise PipelineStageError(
            stage="credentials",
            detail=f"Failed to read secure credential storage: {exc}",
            hint="Check the keyring backend or pass keys through environment variables.",
        ) from exc
    return config.resolve_api_keys(
        RuntimeConfigSources(cli=cli_values, secure=secure_values, env=dict(os.environ))
    )


def _build_providers(config: VoicecastConfig, api_key: str | None) -> ProviderSet:
    return ProviderFactory.create_set(config, _resolve_api_keys(config, api_key))


def _validate_voice(voice: str | None, config: VoicecastConfig) -> str:
    resolved = voice or config.default_voice
    if resolved not in AVAILABLE_VOICES:
        raise PipelineStageError(
            stage="input",
            detail=f"Unsupported voice `{resolved}`.",
            hint=f"Use one of: {', '.join(AVAILABLE_VOICES)}.",
        )
    return resolved


@app.command("serve")
def serve_command(
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Optional YAML config file."),
    ] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Bind host.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Bind port.")] = None,
) -> None:
    """Serve the HTTP API."""

    try:
        config = _load_config(config_file)
        configure_logging(config.log_level)
        keys = _resolve_api_keys(config)
    except PipelineStageError as exc:
        exit_with_command_error("serve", exc)

    uvicorn.run(
        create_app(config, api_keys=keys),
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower() if config.log_level != "SUCCESS" else "info",
    )


@app.command("speak")
def speak_command(
    input_file: Annotated[Path, typer.Argument(help="UTF-8 text file to synthesize.")],
    out: Annotated[Path, typer.Option("--out", help="Output audio file path.")],
    voice: Annotated[Optional[str], typer.Option("--voice", help="Voice name.")] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Optional YAML config file."),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="API key for the configured completion provider."),
    ] = None,
) -> None:
    """Chunk a text file and synthesize it into one audio file."""

    try:
        config = _load_config(config_file)
        configure_logging(config.log_level, plain=True)
        resolved_voice = _validate_voice(voice, config)
        try:
            text = input_file.read_text(encoding="utf-8")
        except OSError as exc:
            raise PipelineStageError(
                stage="input",
                detail=f"Cannot read input file `{input_file}`: {exc}",
            ) from exc
        if len(text) > config.max_text_chars:
            raise PipelineStageError(
                stage="input",
                detail=(
                    f"Text is too long ({len(text)} characters). "
                    f"Maximum allowed is {config.max_text_chars} characters."
                ),
            )
        providers = _build_providers(config, api_key)

        out.parent.mkdir(parents=True, exist_ok=True)
        materializer = AudioMaterializer(
            providers.speech,
            AudioStore(out.parent),
            chunk_chars=config.tts_chunk_chars,
            timeout_seconds=config.provider_timeout_seconds,
        )
        try:
            audio = asyncio.run(
                materializer.materialize(
                    text,
                    resolved_voice,
                    on_progress=lambda done, total: echo_progress("speak", "synthesize", done, total),
                )
            )
        except (AudioStorageError, InputValidationError, ProviderError) as exc:
            raise PipelineStageError(stage="synthesize", detail=str(exc)) from exc
        audio.path.replace(out)
    except PipelineStageError as exc:
        exit_with_command_error("speak", exc)

    typer.echo(f"Audio: {out} ({audio.size_bytes} bytes, ~{audio.duration_seconds}s)")


async def _run_project(manager: PodcastProjectManager, executor: PipelineExecutor, project_id: int) -> ProjectState:
    last_seen: tuple[ProjectStatus, int] | None = None
    while True:
        project = manager.get(project_id)
        marker = (project.status, project.progress)
        if marker != last_seen:
            echo_progress("podcast", project.status.value, project.progress, 100)
            last_seen = marker
        if project.is_terminal:
            await executor.drain()
            return project
        await asyncio.sleep(_POLL_INTERVAL_SECONDS)


@app.command("podcast")
def podcast_command(
    topic: Annotated[str, typer.Argument(help="Podcast topic.")],
    minutes: Annotated[int, typer.Option("--minutes", help="Target duration (5-60).")] = 15,
    voice: Annotated[Optional[str], typer.Option("--voice", help="Voice name.")] = None,
    script_out: Annotated[
        Optional[Path],
        typer.Option("--script-out", help="Optional path for the formatted script."),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Optional YAML config file."),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="API key for the configured completion provider."),
    ] = None,
) -> None:
    """Research, write, and synthesize a podcast locally."""

    try:
        config = _load_config(config_file)
        configure_logging(config.log_level, plain=True)
        providers = _build_providers(config, api_key)
        executor = PipelineExecutor()
        store = AudioStore(config.content_dir, config.audio_url_prefix)
        manager = PodcastProjectManager(
            config=config,
            providers=providers,
            store=store,
            executor=executor,
        )

        async def _create_and_wait() -> ProjectState:
            project_id = manager.create_project(topic, minutes, voice)
            return await _run_project(manager, executor, project_id)

        try:
            project = asyncio.run(_create_and_wait())
        except InputValidationError as exc:
            raise PipelineStageError(stage="input", detail=str(exc)) from exc
        if project.status is ProjectStatus.FAILED:
            raise PipelineStageError(
                stage=project.failed_phase or "podcast",
                detail=project.error or "Project failed.",
            )
        if script_out is not None and project.final_script is not None:
            script_out.parent.mkdir(parents=True, exist_ok=True)
            script_out.write_text(project.final_script, encoding="utf-8")
    except PipelineStageError as exc:
        exit_with_command_error("podcast", exc)

    echo_project_summary(project)
    if project.output_path is not None:
        typer.echo(f"Audio: {project.output_path}")
    if script_out is not None:
        typer.echo(f"Script: {script_out}")


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str,
        typer.Option("--provider", help=f"One of: {', '.join(CREDENTIAL_PROVIDERS)}."),
    ] = "openai",
    set_api_key: Annotated[
        bool,
        typer.Option("--set", help="Prompt for an API key with hidden input and store it."),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option("--clear", help="Remove the stored API key."),
    ] = False,
) -> None:
    """Manage securely stored provider API keys."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set` and `--clear` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )
    if provider not in CREDENTIAL_PROVIDERS:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail=f"Unsupported provider `{provider}`.",
                hint=f"Use one of: {', '.join(CREDENTIAL_PROVIDERS)}.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set`.",
                ),
            )
        try:
            credential_store.set_api_key(provider, prompted_api_key)
        except (RuntimeError, KeyringError) as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo(f"{provider} API key stored in secure credential storage.")
        return

    if clear_api_key:
        try:
            removed = credential_store.clear_api_key(provider)
        except RuntimeError as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(stage="credentials", detail=str(exc)),
            )
        if removed:
            typer.echo(f"Stored {provider} API key cleared from secure credential storage.")
        else:
            typer.echo(f"No stored {provider} API key found in secure credential storage.")
        return

    available = credential_store.is_available()
    stored = {name: credential_store.get_api_key(name) is not None for name in CREDENTIAL_PROVIDERS}
    echo_credential_status(available, stored)


def main() -> None:
    """Run the Voicecast CLI application."""

    app()
