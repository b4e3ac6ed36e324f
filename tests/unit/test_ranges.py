"""Unit tests for HTTP `Range` header parsing."""

from __future__ import annotations

import pytest

from voicecast.api.ranges import (
    ByteRange,
    MalformedRangeError,
    RangeNotSatisfiableError,
    parse_range_header,
)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("bytes=0-99", ByteRange(0, 99, 1000)),
        ("bytes=500-", ByteRange(500, 999, 1000)),
        ("bytes=-100", ByteRange(900, 999, 1000)),
        ("bytes=-5000", ByteRange(0, 999, 1000)),
        ("bytes=900-5000", ByteRange(900, 999, 1000)),
        ("BYTES = 10 - 19", ByteRange(10, 19, 1000)),
    ],
)
def test_parse_range_header_resolves_single_ranges(header: str, expected: ByteRange) -> None:
    assert parse_range_header(header, 1000) == expected


def test_byte_range_length_and_content_range() -> None:
    byte_range = parse_range_header("bytes=0-99", 1000)

    assert byte_range.length == 100
    assert byte_range.content_range == "bytes 0-99/1000"


@pytest.mark.parametrize(
    "header",
    ["bytes=abc", "items=0-1", "bytes=-", "bytes=10-5", "bytes=0-1,5-9", "0-99"],
)
def test_parse_range_header_rejects_malformed(header: str) -> None:
    with pytest.raises(MalformedRangeError):
        parse_range_header(header, 1000)


@pytest.mark.parametrize(("header", "total"), [("bytes=1000-", 1000), ("bytes=-0", 1000), ("bytes=-10", 0)])
def test_parse_range_header_rejects_unsatisfiable(header: str, total: int) -> None:
    with pytest.raises(RangeNotSatisfiableError):
        parse_range_header(header, total)
