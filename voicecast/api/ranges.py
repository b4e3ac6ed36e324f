"""HTTP `Range` header parsing for audio delivery.

Responsibilities:
- Parse single `bytes=` ranges in `start-end`, `start-`, and `-suffix` forms.
- Distinguish malformed headers (400) from unsatisfiable ranges (416).
"""

from __future__ import annotations

from dataclasses import dataclass
import re

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


class MalformedRangeError(ValueError):
    """Raised when a `Range` header cannot be parsed."""


class RangeNotSatisfiableError(ValueError):
    """Raised when a parsed range lies outside the resource."""


@dataclass(frozen=True, slots=True)
class ByteRange:
    """Inclusive byte span within a resource of `total` bytes."""

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


def parse_range_header(header: str, total: int) -> ByteRange:
    """Resolve a `Range` header against a resource size.

    An `end` past the last byte is clamped to it. Multiple ranges are rejected.

    Raises:
        MalformedRangeError: If the header is not a single well-formed byte range.
        RangeNotSatisfiableError: If the range selects no byte of the resource.
    """

    if "," in header:
        raise MalformedRangeError("Multiple byte ranges are not supported.")
    match = _RANGE_RE.match(header)
    if match is None:
        raise MalformedRangeError("Invalid range header")
    raw_start, raw_end = match.groups()
    if not raw_start and not raw_end:
        raise MalformedRangeError("Invalid range header")

    if not raw_start:
        suffix = int(raw_end)
        if suffix == 0 or total == 0:
            raise RangeNotSatisfiableError("Requested range not satisfiable")
        return ByteRange(start=max(0, total - suffix), end=total - 1, total=total)

    start = int(raw_start)
    end = int(raw_end) if raw_end else total - 1
    if raw_end and end < start:
        raise MalformedRangeError("Invalid range header")
    if start >= total:
        raise RangeNotSatisfiableError("Requested range not satisfiable")
    return ByteRange(start=start, end=min(end, total - 1), total=total)
