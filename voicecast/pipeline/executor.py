"""Background execution of ordered, progress-reporting pipeline phases.

Responsibilities:
- Run named phases sequentially against one registry record.
- Commit phase outputs and monotonic progress as whole-record replacements.
- Contain every phase failure inside the run and store a sanitized message.
- Check cancellation before each phase and keep detached tasks referenced.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import math
from typing import Any, Awaitable, Callable, Generic, Mapping, Sequence, TypeVar

from loguru import logger

from ..errors import (
    AudioStorageError,
    InputValidationError,
    JobCanceledError,
    JobNotFoundError,
    PipelineStageError,
    ProviderError,
    RecordFinalizedError,
)
from ..jobs.cancellation import CancellationToken
from ..jobs.registry import JobRegistry, TrackedRecord
from ..telemetry.logger import RunLogger

T = TypeVar("T", bound=TrackedRecord)

PhaseAction = Callable[["PhaseContext[Any]"], Awaitable[Mapping[str, Any] | None]]

_DOMAIN_ERRORS = (
    AudioStorageError,
    InputValidationError,
    JobCanceledError,
    PipelineStageError,
    ProviderError,
)


@dataclass(frozen=True, slots=True)
class Phase:
    """One named pipeline phase.

    Attributes:
        name: Phase name used in logs and generic error messages.
        action: Coroutine function receiving a `PhaseContext`; returns field updates.
        status: Optional status value the record enters when the phase starts.
    """

    name: str
    action: PhaseAction
    status: str | None = None


class PhaseContext(Generic[T]):
    """Handle given to a running phase for reading and committing its record."""

    def __init__(
        self,
        *,
        registry: JobRegistry[T],
        record_id: int,
        token: CancellationToken,
        phase_index: int,
        phase_count: int,
    ) -> None:
        self._registry = registry
        self.record_id = record_id
        self.token = token
        self._phase_index = phase_index
        self._phase_count = phase_count

    @property
    def record(self) -> T:
        """Return the latest committed snapshot."""

        return self._registry.get(self.record_id)

    def report(self, fraction: float) -> T:
        """Commit sub-progress for the current phase as a fraction in `[0, 1]`."""

        bounded = min(1.0, max(0.0, fraction))
        return _commit_progress(
            self._registry,
            self.record_id,
            _progress_value(self._phase_index + bounded, self._phase_count),
        )

    def commit(self, **changes: Any) -> T:
        """Commit intermediate field values visible to status readers."""

        return self._registry.update(self.record_id, lambda record: replace(record, **changes))


def _progress_value(done: float, total: int) -> int:
    """Return floor progress percent, reserving 100 for completion."""

    if total <= 0:
        return 0
    return min(99, math.floor(100 * done / total))


def _commit_progress(registry: JobRegistry[T], record_id: int, value: int) -> T:
    """Raise stored progress to `value`, never lowering it."""

    def _apply(record: T) -> T:
        current = getattr(record, "progress")
        if value <= current:
            return record
        return replace(record, progress=value)

    return registry.update(record_id, _apply)


def failure_message(phase_name: str, exc: BaseException) -> str:
    """Return the client-safe message stored on a failed record."""

    if isinstance(exc, _DOMAIN_ERRORS):
        return str(exc) or f"{phase_name} failed."
    return f"Unexpected error during {phase_name}."


class PipelineExecutor:
    """Run phase sequences as awaited calls or detached asyncio tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._runs: dict[tuple[str, int], tuple[asyncio.Task[Any], CancellationToken]] = {}

    async def run(
        self,
        registry: JobRegistry[T],
        record_id: int,
        phases: Sequence[Phase],
        token: CancellationToken | None = None,
        *,
        kind: str = "job",
        on_failure: Callable[[T], None] | None = None,
    ) -> T:
        """Run phases in order and return the final committed record.

        Phase errors never propagate; they end the run with the record in its
        failed state. Task cancellation marks the record failed and re-raises.
        `on_failure` then receives the failed record to release what the run
        committed but never handed over.
        """

        token = token or CancellationToken()
        run_logger = RunLogger(kind=kind, record_id=record_id)
        total = len(phases)
        current_phase = "startup"
        try:
            for index, phase in enumerate(phases):
                current_phase = phase.name
                token.raise_if_cancelled()
                run_logger.log_stage_start(phase.name)
                registry.update(record_id, lambda record, status=phase.status: record.enter_phase(status))
                context: PhaseContext[T] = PhaseContext(
                    registry=registry,
                    record_id=record_id,
                    token=token,
                    phase_index=index,
                    phase_count=total,
                )
                updates = await phase.action(context)
                token.raise_if_cancelled()
                if updates:
                    registry.update(record_id, lambda record, values=dict(updates): replace(record, **values))
                _commit_progress(registry, record_id, _progress_value(index + 1, total))
                run_logger.log_stage_complete(phase.name)
            return registry.update(record_id, lambda record: record.mark_complete())
        except asyncio.CancelledError:
            run_logger.log_stage_failure(current_phase, "CancelledError")
            self._mark_failed(registry, record_id, JobCanceledError().args[0])
            self._release_failed(registry, record_id, on_failure)
            raise
        except Exception as exc:
            run_logger.log_stage_failure(current_phase, type(exc).__name__)
            if not isinstance(exc, _DOMAIN_ERRORS):
                logger.opt(exception=exc).error(
                    "{} {} failed unexpectedly during {}.", kind, record_id, current_phase
                )
            failed = self._mark_failed(registry, record_id, failure_message(current_phase, exc))
            self._release_failed(registry, record_id, on_failure)
            return failed

    def spawn(
        self,
        registry: JobRegistry[T],
        record_id: int,
        phases: Sequence[Phase],
        token: CancellationToken | None = None,
        *,
        kind: str = "job",
        on_failure: Callable[[T], None] | None = None,
    ) -> asyncio.Task[T]:
        """Start `run` as a detached task that stays referenced until done."""

        token = token or CancellationToken()
        task = asyncio.create_task(
            self.run(registry, record_id, phases, token, kind=kind, on_failure=on_failure),
            name=f"voicecast-{kind}-{record_id}",
        )
        key = (kind, record_id)
        self._tasks.add(task)
        self._runs[key] = (task, token)
        task.add_done_callback(lambda done, key=key: self._forget(key, done))
        return task

    def cancel(self, registry: JobRegistry[T], record_id: int, *, kind: str = "job") -> T:
        """Cancel a spawned run and return the record in its failed state.

        Terminal records are returned unchanged.

        Raises:
            JobNotFoundError: If the record is unknown.
        """

        record = registry.get(record_id)
        run = self._runs.get((kind, record_id))
        if run is not None:
            task, token = run
            token.cancel()
            task.cancel()
        if record.is_terminal:
            return record
        logger.info("Canceling {} {}.", kind, record_id)
        failed = self._mark_failed(registry, record_id, JobCanceledError().args[0])
        return failed if failed is not None else registry.get(record_id)

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def drain(self) -> None:
        """Wait for every spawned task to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel spawned tasks and wait until they settle."""

        for _, token in list(self._runs.values()):
            token.cancel()
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

    def _forget(self, key: tuple[str, int], task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        run = self._runs.get(key)
        if run is not None and run[0] is task:
            del self._runs[key]

    def _mark_failed(self, registry: JobRegistry[T], record_id: int, message: str) -> T | None:
        """Move a record to its failed state unless it was removed or finalized."""

        try:
            return registry.update(record_id, lambda record: record.mark_failed(message))
        except JobNotFoundError:
            logger.debug("Record {} was removed before its failure could be stored.", record_id)
            return None
        except RecordFinalizedError:
            return registry.find(record_id)

    def _release_failed(
        self,
        registry: JobRegistry[T],
        record_id: int,
        on_failure: Callable[[T], None] | None,
    ) -> None:
        if on_failure is None:
            return
        record = registry.find(record_id)
        if record is None:
            return
        try:
            on_failure(record)
        except OSError as exc:
            logger.warning("Could not release outputs of record {}: {}", record_id, exc)
