"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
progress lines, credential status rows, and project summaries.
"""

from __future__ import annotations

from typing import Mapping, NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import ProjectState


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_progress(command_name: str, stage: str, done: int, total: int) -> None:
    """Print one deterministic progress line."""

    typer.echo(f"[progress] command={command_name} stage={stage} {done}/{total}")


def echo_project_summary(project: ProjectState) -> None:
    """Print the outcome and estimated cost of a finished project."""

    typer.echo(f"Project: {project.id} ({project.status.value})")
    if project.outline is not None:
        typer.echo(f"Title: {project.outline.title}")
    typer.echo(f"Generation units: {len(project.content_units)}")
    typer.echo(f"Estimated tokens: {project.estimated_tokens_used}")
    typer.echo(f"Cost Total (USD): {project.estimated_cost_usd:.6f}")


def echo_credential_status(available: bool, stored: Mapping[str, bool]) -> None:
    """Print secure storage availability and per-provider key presence."""

    typer.echo(f"Secure credential storage: {'available' if available else 'unavailable'}")
    for provider, present in stored.items():
        typer.echo(f"Stored {provider} API key: {'present' if present else 'not set'}")
