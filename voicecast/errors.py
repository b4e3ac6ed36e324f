"""Domain exceptions for pipeline, job, and API diagnostics.

Responsibilities:
- Separate validation, provider, storage, and lookup failures so callers can map
  them to terminal job states or HTTP responses without inspecting messages.
"""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class InputValidationError(ValueError):
    """Raised when request input is malformed and must never enter a job pipeline."""


class TextTooLongError(InputValidationError):
    """Raised when submitted text exceeds the absolute synthesis limit."""

    def __init__(self, length: int, max_length: int) -> None:
        """Initialize with the offending length and the configured maximum."""

        super().__init__(
            f"Text is too long ({length} characters). "
            f"Maximum allowed is {max_length} characters."
        )
        self.length = length
        self.max_length = max_length


class ProviderError(RuntimeError):
    """Raised when a third-party provider request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code


class AudioStorageError(RuntimeError):
    """Raised when synthesized audio cannot be written or verified on disk."""


class JobNotFoundError(LookupError):
    """Raised when a job or project identifier is unknown to the registry."""

    def __init__(self, record_id: int) -> None:
        super().__init__(f"Job not found: {record_id}")
        self.record_id = record_id


class RecordFinalizedError(RuntimeError):
    """Raised when a write targets a record that already reached a terminal state."""


class JobCanceledError(Exception):
    """Raised at a suspension point when the owning job was canceled."""

    def __init__(self, message: str = "Job was canceled.") -> None:
        super().__init__(message)
