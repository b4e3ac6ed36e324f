"""In-memory library of published audio records."""

from __future__ import annotations

from dataclasses import replace
import threading

from ..errors import JobNotFoundError
from ..models.datatypes import AudioRecord


class AudioLibrary:
    """Thread-safe store of `AudioRecord` entries with integer ids."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[int, AudioRecord] = {}
        self._next_id = 1

    def add(self, record: AudioRecord) -> AudioRecord:
        """Store a record under a fresh id and return the stored copy."""

        with self._lock:
            stored = replace(record, id=self._next_id)
            self._next_id += 1
            self._records[stored.id] = stored
            return stored

    def get(self, record_id: int) -> AudioRecord:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise JobNotFoundError(record_id)
        return record

    def list(self) -> list[AudioRecord]:
        """Return records newest first."""

        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda record: (record.created_at, record.id), reverse=True)

    def delete(self, record_id: int) -> AudioRecord:
        with self._lock:
            record = self._records.pop(record_id, None)
        if record is None:
            raise JobNotFoundError(record_id)
        return record
