"""Deterministic in-process response cache for read-only provider calls.

Responsibilities:
- Build stable cache keys from provider, model, operation, and normalized input.
- Reuse search answers for repeated queries within one process.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from hashlib import sha256
import json
import threading
from typing import Any, Generic, TypeVar

V = TypeVar("V")


def _normalize_identity_value(value: Any) -> Any:
    """Normalize identity payload values for stable cache key hashing."""

    if isinstance(value, str):
        return " ".join(value.split()).lower()
    if isinstance(value, list | tuple):
        return [_normalize_identity_value(item) for item in value]
    if isinstance(value, dict):
        return {
            str(key): _normalize_identity_value(value[key])
            for key in sorted(value.keys(), key=str)
        }
    return value


@dataclass(slots=True)
class ResponseCache(Generic[V]):
    """Bounded LRU cache keyed by provider/model/operation/input identity."""

    max_entries: int = 256
    entries: OrderedDict[str, V] = field(default_factory=OrderedDict)
    hits: int = 0
    misses: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @staticmethod
    def make_key(
        *,
        provider: str,
        model: str,
        operation: str,
        input_identity: Any,
    ) -> str:
        """Build a deterministic cache key with a normalized identity hash suffix."""

        canonical_identity = json.dumps(
            _normalize_identity_value(input_identity),
            sort_keys=True,
            ensure_ascii=True,
            separators=(",", ":"),
        )
        identity_hash = sha256(canonical_identity.encode("utf-8")).hexdigest()
        return (
            f"response:{provider.strip().lower()}:{model.strip()}:"
            f"{operation.strip().lower()}:{identity_hash}"
        )

    def get(self, cache_key: str) -> V | None:
        """Return the cached value and update hit/miss counters."""

        with self._lock:
            if cache_key in self.entries:
                self.hits += 1
                self.entries.move_to_end(cache_key)
                return self.entries[cache_key]
            self.misses += 1
            return None

    def set(self, cache_key: str, value: V) -> None:
        with self._lock:
            self.entries[cache_key] = value
            self.entries.move_to_end(cache_key)
            while len(self.entries) > self.max_entries:
                self.entries.popitem(last=False)

    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)
