"""Configuration model and loaders for Voicecast.

Responsibilities:
- Define service configuration as a typed dataclass.
- Provide loader entry points for YAML- and environment-based configuration.
- Resolve provider API keys with deterministic source precedence.

Key types:
- `VoicecastConfig`: normalized runtime settings for the service and CLI.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ProviderApiKeys`: resolved per-provider API keys.
- `ConfigLoader`: static construction helpers for `VoicecastConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import (
    normalize_optional_string,
    parse_positive_float,
    parse_positive_int,
)

AVAILABLE_VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")

SUPPORTED_COMPLETION_PROVIDERS = frozenset({"openai", "anthropic"})
SUPPORTED_SPEECH_PROVIDERS = frozenset({"openai"})
SUPPORTED_SEARCH_PROVIDERS = frozenset({"perplexity"})
SUPPORTED_IMAGE_PROVIDERS = frozenset({"openai"})

DEFAULT_COMPLETION_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-7-sonnet-20250219",
}

_LOG_LEVELS = frozenset({"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"})

API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
}


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic API key precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments, keyed by provider id.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables, keyed by variable name.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderApiKeys:
    """Resolved API keys; never persisted or logged."""

    openai: str | None = None
    anthropic: str | None = None
    perplexity: str | None = None

    def for_provider(self, provider_id: str) -> str | None:
        return getattr(self, provider_id, None)


@dataclass(slots=True)
class VoicecastConfig:
    """Runtime configuration for the Voicecast service.

    Attributes:
        content_dir: Directory holding synthesized audio files.
        audio_url_prefix: URL path prefix under which audio files are served.
        sync_threshold_chars: Inputs up to this length are synthesized inline.
        max_text_chars: Absolute input limit; longer inputs are rejected.
        tts_chunk_chars: Maximum characters per speech-synthesis call.
        generation_token_ceiling: Token ceiling of one generation unit.
        overlap_chars: Characters of carried-forward context between units.
        tokens_per_minute: Spoken-token rate used to size outline sections.
        provider_completion: Completion provider id (`openai` or `anthropic`).
        provider_speech: Speech provider id.
        provider_search: Search provider id.
        provider_image: Artwork provider id.
        model_completion: Completion model; `None` selects the provider default.
        model_speech: Speech model identifier.
        model_search: Search model identifier.
        model_image: Image model identifier.
        default_voice: Voice used when requests omit one.
        provider_timeout_seconds: Per-call timeout applied around provider calls.
        search_retries: Extra attempts for read-only search calls.
        job_ttl_seconds: Seconds terminal jobs remain readable.
        max_jobs: Registry capacity per record kind.
        log_level: Minimum loguru level.
        host: Bind host for `voicecast serve`.
        port: Bind port for `voicecast serve`.
        openai_api_key: Optional OpenAI key from configuration.
        anthropic_api_key: Optional Anthropic key from configuration.
        perplexity_api_key: Optional Perplexity key from configuration.
    """

    content_dir: Path = Path("content")
    audio_url_prefix: str = "/audio"
    sync_threshold_chars: int = 5000
    max_text_chars: int = 100000
    tts_chunk_chars: int = 4000
    generation_token_ceiling: int = 3000
    overlap_chars: int = 1000
    tokens_per_minute: int = 750
    provider_completion: str = "openai"
    provider_speech: str = "openai"
    provider_search: str = "perplexity"
    provider_image: str = "openai"
    model_completion: str | None = None
    model_speech: str = "tts-1"
    model_search: str = "sonar-pro"
    model_image: str = "dall-e-3"
    default_voice: str = "alloy"
    provider_timeout_seconds: float = 120.0
    search_retries: int = 1
    job_ttl_seconds: float = 3600.0
    max_jobs: int = 500
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    perplexity_api_key: str | None = None

    def validate(self) -> None:
        """Validate configuration values before the service starts."""

        self._validate_provider_id(
            self.provider_completion, "provider_completion", SUPPORTED_COMPLETION_PROVIDERS
        )
        self._validate_provider_id(self.provider_speech, "provider_speech", SUPPORTED_SPEECH_PROVIDERS)
        self._validate_provider_id(self.provider_search, "provider_search", SUPPORTED_SEARCH_PROVIDERS)
        self._validate_provider_id(self.provider_image, "provider_image", SUPPORTED_IMAGE_PROVIDERS)
        for name in (
            "sync_threshold_chars",
            "max_text_chars",
            "tts_chunk_chars",
            "generation_token_ceiling",
            "tokens_per_minute",
            "max_jobs",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"`{name}` must be a positive integer.")
        if self.overlap_chars < 0:
            raise ValueError("`overlap_chars` must not be negative.")
        if self.search_retries < 0:
            raise ValueError("`search_retries` must not be negative.")
        if self.sync_threshold_chars > self.max_text_chars:
            raise ValueError("`sync_threshold_chars` must not exceed `max_text_chars`.")
        if self.provider_timeout_seconds <= 0 or self.job_ttl_seconds <= 0:
            raise ValueError("Timeouts and TTLs must be positive numbers.")
        if self.default_voice not in AVAILABLE_VOICES:
            raise ValueError(
                f"Unsupported `default_voice` `{self.default_voice}`; "
                f"supported: {', '.join(AVAILABLE_VOICES)}."
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unsupported `log_level` `{self.log_level}`.")
        if not self.audio_url_prefix.startswith("/"):
            raise ValueError("`audio_url_prefix` must start with `/`.")
        if not 0 < self.port < 65536:
            raise ValueError("`port` must be between 1 and 65535.")

    @property
    def completion_model(self) -> str:
        """Return the configured completion model or the provider default."""

        return self.model_completion or DEFAULT_COMPLETION_MODELS[self.provider_completion]

    def resolve_api_keys(self, sources: RuntimeConfigSources | None = None) -> ProviderApiKeys:
        """Resolve provider API keys with deterministic source precedence.

        Precedence for each provider is `cli` > `secure` > `env` > config field.
        """

        resolved_sources = sources if sources is not None else RuntimeConfigSources()
        values: dict[str, str | None] = {}
        for provider, env_key in API_KEY_ENV_VARS.items():
            values[provider] = (
                self._normalized_lookup(resolved_sources.cli, provider)
                or self._normalized_lookup(resolved_sources.secure, provider)
                or self._normalized_lookup(resolved_sources.env, env_key)
                or normalize_optional_string(getattr(self, f"{provider}_api_key"))
            )
        return ProviderApiKeys(**values)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _validate_provider_id(provider_id: str, field_name: str, supported: frozenset[str]) -> None:
        """Validate provider identifiers against implemented providers."""

        if provider_id not in supported:
            supported_text = ", ".join(sorted(supported))
            raise ValueError(
                f"Unsupported `{field_name}` value `{provider_id}`; supported: {supported_text}."
            )


_INT_FIELDS = frozenset(
    {
        "sync_threshold_chars",
        "max_text_chars",
        "tts_chunk_chars",
        "generation_token_ceiling",
        "tokens_per_minute",
        "max_jobs",
        "port",
    }
)
_NON_NEGATIVE_INT_FIELDS = frozenset({"overlap_chars", "search_retries"})
_FLOAT_FIELDS = frozenset({"provider_timeout_seconds", "job_ttl_seconds"})
_PATH_FIELDS = frozenset({"content_dir"})


class ConfigLoader:
    """Factory methods for creating `VoicecastConfig` from external sources."""

    _SUPPORTED_KEYS = frozenset(item.name for item in fields(VoicecastConfig))
    ENV_PREFIX = "VOICECAST_"

    @staticmethod
    def from_yaml(path: Path) -> VoicecastConfig:
        """Create a validated config from a YAML file."""

        raw_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> VoicecastConfig:
        """Create a validated config from `VOICECAST_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in ConfigLoader._SUPPORTED_KEYS:
            env_key = f"{ConfigLoader.ENV_PREFIX}{key.upper()}"
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                payload[key] = value
        return ConfigLoader.from_mapping(payload, source_label="environment")

    @staticmethod
    def from_mapping(payload: Mapping[str, Any], source_label: str = "config") -> VoicecastConfig:
        """Build a validated config from a mapping of field values."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")
        values: dict[str, Any] = {}
        try:
            for key, raw_value in payload.items():
                parsed = ConfigLoader._parse_field(key, raw_value)
                if parsed is not None:
                    values[key] = parsed
            config = VoicecastConfig(**values)
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{source_label}: {exc}") from exc
        return config

    @staticmethod
    def _parse_field(key: str, raw_value: Any) -> Any:
        """Normalize one raw field value, returning `None` to keep the default."""

        if key in _INT_FIELDS:
            return parse_positive_int(raw_value, key)
        if key in _NON_NEGATIVE_INT_FIELDS:
            text = normalize_optional_string(raw_value)
            if text is None or isinstance(raw_value, bool) or not text.isdigit():
                raise ValueError(f"`{key}` must be a non-negative integer.")
            return int(text)
        if key in _FLOAT_FIELDS:
            return parse_positive_float(raw_value, key)
        if key in _PATH_FIELDS:
            text = normalize_optional_string(raw_value)
            if text is None:
                raise ValueError(f"`{key}` must be a non-empty path.")
            return Path(text).expanduser()
        text = normalize_optional_string(raw_value)
        if text is None:
            return None
        if key == "log_level":
            return text.upper()
        if key.startswith("provider_"):
            return text.lower()
        return text
