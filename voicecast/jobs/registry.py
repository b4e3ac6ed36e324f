"""In-memory registry of job and project records.

Responsibilities:
- Allocate process-unique, monotonically increasing record ids.
- Swap whole immutable records under a lock so readers never see partial writes.
- Refuse writes to records that already reached a terminal state.
- Bound memory by evicting terminal records after a TTL or over capacity.
"""

from __future__ import annotations

from collections import OrderedDict
import threading
from time import monotonic
from typing import Callable, Generic, Protocol, TypeVar

from loguru import logger

from ..errors import JobNotFoundError, RecordFinalizedError


class TrackedRecord(Protocol):
    """Minimal shape required from registry records."""

    @property
    def id(self) -> int: ...

    @property
    def is_terminal(self) -> bool: ...


T = TypeVar("T", bound=TrackedRecord)


class JobRegistry(Generic[T]):
    """Thread-safe keyed store of immutable state records."""

    def __init__(
        self,
        *,
        ttl_seconds: float = 3600.0,
        max_records: int = 500,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize an empty registry.

        Args:
            ttl_seconds: Seconds a terminal record stays readable before eviction.
            max_records: Soft capacity; only terminal records are ever evicted.
            clock: Monotonic time source, injectable for tests.
        """

        if ttl_seconds <= 0:
            raise ValueError("`ttl_seconds` must be positive.")
        if max_records < 1:
            raise ValueError("`max_records` must be at least 1.")
        self.ttl_seconds = ttl_seconds
        self.max_records = max_records
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[int, T] = {}
        self._finished_at: OrderedDict[int, float] = OrderedDict()
        self._next_id = 1

    def create(self, factory: Callable[[int], T]) -> int:
        """Allocate an id, store `factory(id)`, and return the id."""

        with self._lock:
            self._evict_locked()
            record_id = self._next_id
            self._next_id += 1
            record = factory(record_id)
            if record.id != record_id:
                raise ValueError("Record factory must use the allocated id.")
            self._records[record_id] = record
            if record.is_terminal:
                self._finished_at[record_id] = self._clock()
            self._enforce_capacity_locked()
            return record_id

    def get(self, record_id: int) -> T:
        """Return the committed record or raise `JobNotFoundError`."""

        record = self.find(record_id)
        if record is None:
            raise JobNotFoundError(record_id)
        return record

    def find(self, record_id: int) -> T | None:
        with self._lock:
            self._evict_locked()
            return self._records.get(record_id)

    def update(self, record_id: int, mutator: Callable[[T], T]) -> T:
        """Replace a record with `mutator(current)` atomically.

        Raises:
            JobNotFoundError: If the id is unknown or evicted.
            RecordFinalizedError: If the current record is already terminal.
        """

        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise JobNotFoundError(record_id)
            if current.is_terminal:
                raise RecordFinalizedError(f"Record {record_id} is already finalized.")
            updated = mutator(current)
            if updated.id != record_id:
                raise ValueError("Record mutator must preserve the record id.")
            self._records[record_id] = updated
            if updated.is_terminal:
                self._finished_at[record_id] = self._clock()
                self._enforce_capacity_locked()
            return updated

    def list(self) -> list[T]:
        """Return committed records in creation order."""

        with self._lock:
            self._evict_locked()
            return [self._records[key] for key in sorted(self._records)]

    def delete(self, record_id: int) -> T:
        """Remove a record and return its last committed snapshot."""

        with self._lock:
            record = self._records.pop(record_id, None)
            if record is None:
                raise JobNotFoundError(record_id)
            self._finished_at.pop(record_id, None)
            return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _evict_locked(self) -> None:
        """Drop terminal records whose TTL elapsed."""

        now = self._clock()
        expired = [
            record_id
            for record_id, finished_at in self._finished_at.items()
            if now - finished_at >= self.ttl_seconds
        ]
        for record_id in expired:
            self._finished_at.pop(record_id, None)
            self._records.pop(record_id, None)
        if expired:
            logger.debug("Evicted {} expired job record(s).", len(expired))

    def _enforce_capacity_locked(self) -> None:
        """Evict oldest terminal records while the registry is over capacity."""

        while len(self._records) > self.max_records and self._finished_at:
            record_id, _ = self._finished_at.popitem(last=False)
            self._records.pop(record_id, None)
            logger.debug("Evicted job record {} over capacity.", record_id)
