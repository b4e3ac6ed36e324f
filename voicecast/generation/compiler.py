"""Assembly of generated units into one continuous script.

Responsibilities:
- Order units by position and join their core text with blank lines.
- Remove text duplicated across seams in a deterministic order.
- Format the assembled script with a title and timestamped segment markers.
"""

from __future__ import annotations

import re
from typing import Sequence

from loguru import logger

from ..models.datatypes import ContentUnit, Outline

MIN_SEAM_OVERLAP_CHARS = 20
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_TAIL_SENTENCE_WINDOW = 12


def _normalize_sentence(sentence: str) -> str:
    return " ".join(sentence.split())


def format_timestamp(minutes: float) -> str:
    """Format elapsed minutes as `HH:MM`."""

    total = max(0, int(minutes))
    return f"{total // 60:02d}:{total % 60:02d}"


class CompilationStage:
    """Compile content units into the final script."""

    def __init__(self, min_overlap_chars: int = MIN_SEAM_OVERLAP_CHARS) -> None:
        self.min_overlap_chars = min_overlap_chars

    def compile(self, units: Sequence[ContentUnit], outline: Outline | None = None) -> str:
        """Return the assembled core text of all units.

        Args:
            units: Generated units in any order.
            outline: Accepted for symmetry with `format_script`; assembly ignores it.
        """

        _ = outline
        ordered = sorted(units, key=lambda unit: unit.position)
        assembled = ""
        for unit in ordered:
            text = unit.text.strip()
            if not assembled:
                assembled = text
                continue
            text = self.reconcile_seam(assembled, text, unit.trailing_context_used)
            if text:
                assembled = f"{assembled.rstrip()}\n\n{text}"
        logger.debug("Compiled {} unit(s) into {} characters.", len(ordered), len(assembled))
        return assembled

    def reconcile_seam(self, assembled: str, incoming: str, seed: str) -> str:
        """Return `incoming` with content already present at the end of `assembled` removed.

        Applied in order: a verbatim echo of the seed at the head, the longest
        suffix/prefix overlap of at least `min_overlap_chars`, then leading sentences
        that exactly repeat sentences at the assembled tail.
        """

        text = incoming.lstrip()
        stripped_seed = seed.strip()
        if stripped_seed and text.startswith(stripped_seed):
            text = text[len(stripped_seed) :].lstrip()

        overlap = self._longest_overlap(assembled.rstrip(), text)
        if overlap:
            text = text[overlap:].lstrip()

        return self._drop_repeated_sentences(assembled, text)

    def _longest_overlap(self, left: str, right: str) -> int:
        """Return the longest `k >= min_overlap_chars` with `left.endswith(right[:k])`."""

        limit = min(len(left), len(right))
        for size in range(limit, self.min_overlap_chars - 1, -1):
            if left.endswith(right[:size]):
                return size
        return 0

    def _drop_repeated_sentences(self, assembled: str, text: str) -> str:
        tail_sentences = {
            _normalize_sentence(sentence)
            for sentence in _SENTENCE_SPLIT_RE.split(assembled.strip())[-_TAIL_SENTENCE_WINDOW:]
            if sentence.strip()
        }
        sentences = _SENTENCE_SPLIT_RE.split(text) if text else []
        dropped = 0
        while dropped < len(sentences) and _normalize_sentence(sentences[dropped]) in tail_sentences:
            dropped += 1
        if dropped == 0:
            return text
        remainder = text
        for sentence in sentences[:dropped]:
            remainder = remainder[remainder.index(sentence) + len(sentence) :]
        return remainder.lstrip()

    def format_script(self, script: str, outline: Outline) -> str:
        """Prefix the title and insert `## [HH:MM] ...` markers at paragraph boundaries.

        Each marker lands on the paragraph boundary nearest to the character
        position proportional to its start time; markers never reorder text.
        """

        paragraphs = [paragraph for paragraph in script.split("\n\n") if paragraph.strip()]
        headings = [f"Introduction: {outline.introduction.title}"]
        headings += [segment.title for segment in outline.segments]
        headings.append(f"Conclusion: {outline.conclusion.title}")
        durations = [outline.introduction.estimated_duration_minutes]
        durations += [segment.estimated_duration_minutes for segment in outline.segments]
        durations.append(outline.conclusion.estimated_duration_minutes)

        weights = durations if sum(durations) > 0 else [1.0] * len(durations)
        total_weight = sum(weights)
        starts: list[int] = []
        offset = 0
        for paragraph in paragraphs:
            starts.append(offset)
            offset += len(paragraph) + 2
        script_length = max(1, offset - 2)

        markers: dict[int, list[str]] = {}
        elapsed_minutes = 0.0
        elapsed_weight = 0.0
        previous_index = 0
        for position, heading in enumerate(headings):
            if position == 0 or not paragraphs:
                index = 0
            else:
                target = script_length * elapsed_weight / total_weight
                candidates = range(previous_index, len(paragraphs))
                index = min(candidates, key=lambda i: (abs(starts[i] - target), i))
            markers.setdefault(index, []).append(f"## [{format_timestamp(elapsed_minutes)}] {heading}")
            previous_index = index
            elapsed_minutes += durations[position]
            elapsed_weight += weights[position]

        blocks = [f"# {outline.title}"]
        for index, paragraph in enumerate(paragraphs):
            blocks.extend(markers.get(index, []))
            blocks.append(paragraph.strip())
        if not paragraphs:
            blocks.extend(markers.get(0, []))
        return "\n\n".join(blocks) + "\n"
