"""Structured run logging utilities.

Responsibilities:
- Install the process-wide `loguru` sink once at startup.
- Emit concise, deterministic phase-level logs for jobs and projects.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger

_PHASE_FORMAT = "{message}"
_DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"


def configure_logging(level: str = "INFO", sink: TextIO | None = None, *, plain: bool = False) -> None:
    """Replace loguru handlers with one sink at the requested level.

    Args:
        level: Minimum log level name.
        sink: Output stream; defaults to stderr.
        plain: Emit bare messages, as the CLI does for phase lines.
    """

    logger.remove()
    logger.add(
        sink or sys.stderr,
        format=_PHASE_FORMAT if plain else _DEFAULT_FORMAT,
        level=level.upper(),
        colorize=False,
    )


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic phase logs bound to one job or project run."""

    def __init__(self, **base_context: object) -> None:
        """Bind context such as `kind` and `record_id` onto every line."""

        self._base_context = dict(base_context)

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        merged = {**self._base_context, **context}
        line = f"[phase] level={level} stage={stage} event={event}{_format_context(merged)}"
        logger.log(level, line)

    def log_stage_start(self, stage: str, **context: object) -> None:
        self._emit("INFO", "start", stage, **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        self._emit("INFO", "complete", stage, **context)

    def log_stage_failure(self, stage: str, error_type: str) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type)
