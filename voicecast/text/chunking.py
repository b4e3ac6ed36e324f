"""Boundary-aware text segmentation for provider calls.

Responsibilities:
- Split arbitrary-length text into units no longer than a provider limit.
- Prefer sentence boundaries, then word boundaries, then a hard cut.
- Preserve offsets so concatenated unit texts reproduce the input exactly.
"""

from __future__ import annotations

from ..models.datatypes import Chunk


class BoundaryChunker:
    """Create bounded, contiguous chunks with deterministic boundary fallback."""

    _SENTENCE_TERMINATORS = frozenset({".", "!", "?", ";", "\n"})

    def split(self, text: str, max_unit_size: int) -> list[Chunk]:
        """Split text into chunk records.

        Args:
            text: Source text; never modified.
            max_unit_size: Maximum chunk length in characters.

        Returns:
            Ordered chunks whose texts concatenate back to `text`.

        Raises:
            ValueError: If `max_unit_size` is smaller than one.
        """

        if max_unit_size < 1:
            raise ValueError("`max_unit_size` must be at least 1.")

        chunks: list[Chunk] = []
        cursor = 0
        text_length = len(text)
        while cursor < text_length:
            end, boundary_strategy = self._resolve_boundary(text, cursor, max_unit_size)
            chunks.append(
                Chunk(
                    index=len(chunks),
                    text=text[cursor:end],
                    char_start=cursor,
                    char_end=end,
                    boundary_strategy=boundary_strategy,
                )
            )
            cursor = end
        return chunks

    def _resolve_boundary(self, text: str, cursor: int, max_unit_size: int) -> tuple[int, str]:
        """Resolve the exclusive end index and boundary strategy for one chunk."""

        window_end = cursor + max_unit_size
        if window_end >= len(text):
            return len(text), "text_end"

        sentence_end = self._find_backward_boundary(text, cursor, window_end, sentence=True)
        if sentence_end is not None:
            return sentence_end, "sentence"

        word_end = self._find_backward_boundary(text, cursor, window_end, sentence=False)
        if word_end is not None:
            return word_end, "word"

        return window_end, "forced"

    def _find_backward_boundary(
        self,
        text: str,
        cursor: int,
        window_end: int,
        *,
        sentence: bool,
    ) -> int | None:
        """Return the index just past the nearest boundary character inside the window."""

        index = window_end - 1
        while index >= cursor:
            character = text[index]
            if sentence:
                if character in self._SENTENCE_TERMINATORS and not self._is_decimal_period(
                    text, index
                ):
                    return index + 1
            elif character.isspace():
                return index + 1
            index -= 1
        return None

    def _is_decimal_period(self, text: str, index: int) -> bool:
        """Return whether a period sits between two digits."""

        if text[index] != "." or index <= 0 or index + 1 >= len(text):
            return False
        return text[index - 1].isdigit() and text[index + 1].isdigit()


def split_text(text: str, max_unit_size: int) -> list[str]:
    """Return chunk texts for `text` bounded by `max_unit_size`."""

    return [chunk.text for chunk in BoundaryChunker().split(text, max_unit_size)]
