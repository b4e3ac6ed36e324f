"""Unit tests for boundary-aware chunking and speech text cleaning."""

from __future__ import annotations

import random

import pytest

from voicecast.text.chunking import BoundaryChunker, split_text
from voicecast.text.cleaners import SpeechTextCleaner


def test_chunker_prefers_sentence_boundary() -> None:
    """Chunker should end a chunk after the last sentence terminator in the window."""

    chunks = BoundaryChunker().split("Hello world. This is a test.", 15)

    assert chunks[0].text == "Hello world."
    assert chunks[0].boundary_strategy == "sentence"
    assert chunks[-1].boundary_strategy == "text_end"


def test_chunker_does_not_split_decimal_numbers() -> None:
    """Decimal points must not count as sentence terminators."""

    chunks = BoundaryChunker().split("Pi is 3.14159 ok", 10)

    assert chunks[0].text == "Pi is "
    assert chunks[0].boundary_strategy == "word"


def test_chunker_forces_cut_without_any_boundary() -> None:
    """Text without whitespace or terminators should be cut at the window edge."""

    chunks = BoundaryChunker().split("abcdefghij", 4)

    assert [chunk.text for chunk in chunks] == ["abcd", "efgh", "ij"]
    assert chunks[0].boundary_strategy == "forced"


def test_chunks_are_contiguous_and_bounded_for_long_text() -> None:
    """Concatenated chunks should reproduce the input and respect the limit."""

    text = " ".join(f"Sentence number {index} says something useful." for index in range(600))

    chunks = BoundaryChunker().split(text, 4000)

    assert "".join(chunk.text for chunk in chunks) == text
    assert all(len(chunk.text) <= 4000 for chunk in chunks)
    assert len(chunks) > 1
    for previous, current in zip(chunks, chunks[1:]):
        assert previous.char_end == current.char_start
    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))


def test_split_text_rejects_non_positive_limit() -> None:
    """A limit below one character is a programming error."""

    with pytest.raises(ValueError, match="max_unit_size"):
        split_text("anything", 0)


def test_split_text_of_empty_string_is_empty() -> None:
    assert split_text("", 10) == []


def test_cleaner_strips_script_markup_before_synthesis() -> None:
    """Headings and emphasis markers must never be read aloud."""

    script = "# The Title\n\n## [00:00] Introduction: Hi\n\nHello **world** “quoted”.\n\n\n\nBye."

    cleaned = SpeechTextCleaner().clean(script)

    assert cleaned == 'Hello world "quoted".\n\nBye.'


def test_cleaner_keeps_plain_text_untouched() -> None:
    text = "Plain text with no markup at all."

    assert SpeechTextCleaner().clean(text) == text


def test_cleaner_keeps_hash_led_lines_and_arithmetic_in_script_prose() -> None:
    """Only formatting headings are removed; prose that merely looks like markup stays."""

    script = "# Title\n\n## [01:05] Segment\n\n#1 rule: multiply 2*3*4.\n\n## Not a timestamp marker"

    cleaned = SpeechTextCleaner().clean(script)

    assert cleaned == "#1 rule: multiply 2*3*4.\n\n## Not a timestamp marker"


_SWEEP_ALPHABET = "ab .!?\n\t0123456789,"


@pytest.mark.parametrize("max_unit_size", list(range(1, 13)))
def test_chunks_reconstruct_random_text_within_bound(max_unit_size: int) -> None:
    """Every limit should yield bounded, contiguous chunks that rebuild the input exactly."""

    generator = random.Random(7919 + max_unit_size)
    chunker = BoundaryChunker()
    for _ in range(250):
        text = "".join(generator.choice(_SWEEP_ALPHABET) for _ in range(generator.randint(0, 60)))

        chunks = chunker.split(text, max_unit_size)

        assert "".join(chunk.text for chunk in chunks) == text
        assert all(0 < len(chunk.text) <= max_unit_size for chunk in chunks)
        assert [chunk.char_start for chunk in chunks[1:]] == [chunk.char_end for chunk in chunks[:-1]]
        assert not chunks or (chunks[0].char_start, chunks[-1].char_end) == (0, len(text))
