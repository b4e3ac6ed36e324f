"""Outline planning and narrative guidance for podcast projects.

Responsibilities:
- Turn topic analysis and research into an ordered `Outline`.
- Fill missing or duplicate section ids so every section is addressable.
- Produce the narrative guide and per-segment research queries.
"""

from __future__ import annotations

import secrets
from typing import Any, Mapping, Sequence

from loguru import logger

from ..errors import ProviderError
from ..jobs.cancellation import CancellationToken
from ..models.datatypes import (
    Outline,
    OutlineSection,
    OutlineSegment,
    ResearchResult,
    TopicAnalysis,
    to_payload,
)
from ..pipeline.calls import call_provider
from ..providers.base import CompletionOptions, CompletionProvider
from ..providers.prompts import PromptLibrary
from ..telemetry.cost_tracker import CostTracker
from .service import extract_json_object


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(0.0, float(value))


def _string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip() for item in value if str(item).strip())


class _IdAllocator:
    """Hand out unique ids, keeping provided ones when not already taken."""

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def claim(self, raw: Any, prefix: str) -> str:
        candidate = str(raw).strip() if raw is not None else ""
        while not candidate or candidate in self._seen:
            candidate = f"{prefix}-{secrets.token_hex(4)}"
        self._seen.add(candidate)
        return candidate


def parse_outline(payload: Mapping[str, Any]) -> Outline:
    """Build an `Outline` from a camelCase JSON payload.

    Raises:
        ProviderError: With `malformed` kind when required parts are missing.
    """

    ids = _IdAllocator()

    def _section(raw: Any, prefix: str) -> OutlineSection:
        if not isinstance(raw, Mapping):
            raise ProviderError(
                f"Outline response has a malformed `{prefix}` section.",
                failure_kind="malformed",
            )
        return OutlineSection(
            id=ids.claim(raw.get("id"), prefix),
            title=str(raw.get("title") or prefix.title()).strip(),
            key_points=_string_tuple(raw.get("keyPoints")),
            talking_points=_string_tuple(raw.get("talkingPoints")),
            estimated_duration_minutes=_number(raw.get("estimatedDuration")),
            estimated_tokens=int(_number(raw.get("estimatedTokens"))),
        )

    segments_raw = payload.get("mainSegments")
    if not isinstance(segments_raw, list):
        raise ProviderError(
            "Outline response is missing the `mainSegments` list.",
            failure_kind="malformed",
        )

    introduction = _section(payload.get("introduction"), "intro")
    segments: list[OutlineSegment] = []
    for raw_segment in segments_raw:
        if not isinstance(raw_segment, Mapping):
            continue
        segment_id = ids.claim(raw_segment.get("id"), "segment")
        sections_raw = raw_segment.get("sections")
        sections = tuple(
            _section(item, "section") for item in (sections_raw if isinstance(sections_raw, list) else [])
        )
        segments.append(
            OutlineSegment(
                id=segment_id,
                title=str(raw_segment.get("title") or "Segment").strip(),
                sections=sections,
                estimated_duration_minutes=_number(
                    raw_segment.get("estimatedDuration"),
                    sum(section.estimated_duration_minutes for section in sections),
                ),
            )
        )
    conclusion = _section(payload.get("conclusion"), "conclusion")

    section_minutes = introduction.estimated_duration_minutes + conclusion.estimated_duration_minutes
    section_minutes += sum(segment.estimated_duration_minutes for segment in segments)
    return Outline(
        title=str(payload.get("title") or "Untitled podcast").strip(),
        introduction=introduction,
        segments=tuple(segments),
        conclusion=conclusion,
        estimated_duration_minutes=_number(payload.get("estimatedDuration"), section_minutes),
    )


class NarrativeService:
    """Create outlines, narrative guides, and segment research queries."""

    def __init__(
        self,
        completion: CompletionProvider,
        *,
        prompts: PromptLibrary | None = None,
        timeout_seconds: float = 120.0,
        tokens_per_minute: int = 750,
    ) -> None:
        self.completion = completion
        self.prompts = prompts or PromptLibrary()
        self.timeout_seconds = timeout_seconds
        self.tokens_per_minute = tokens_per_minute

    async def create_outline(
        self,
        topic: str,
        analysis: TopicAnalysis,
        research: Sequence[ResearchResult],
        target_minutes: int,
        token: CancellationToken | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> Outline:
        """Return an ordered outline sized to `target_minutes`."""

        logger.info("Creating outline for a {}-minute podcast.", target_minutes)
        prompt = self.prompts.outline_prompt(
            topic,
            to_payload(analysis),
            research,
            target_minutes,
            self.tokens_per_minute,
        )
        text = await call_provider(
            self.completion.complete,
            prompt,
            self.prompts.json_system_prompt("an expert podcast producer"),
            CompletionOptions(temperature=0.5),
            token=token,
            timeout_seconds=self.timeout_seconds,
            operation="outline planning",
        )
        if cost_tracker is not None:
            cost_tracker.add_llm_usage(prompt, text)
        return parse_outline(extract_json_object(text, what="podcast structure generation"))

    async def create_narrative_guide(
        self,
        topic: str,
        outline: Outline,
        token: CancellationToken | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> str:
        prompt = self.prompts.narrative_guide_prompt(topic, to_payload(outline))
        text = await call_provider(
            self.completion.complete,
            prompt,
            self.prompts.narrative_guide_system_prompt(),
            CompletionOptions(temperature=0.7),
            token=token,
            timeout_seconds=self.timeout_seconds,
            operation="narrative guide",
        )
        if cost_tracker is not None:
            cost_tracker.add_llm_usage(prompt, text)
        return text.strip()

    @staticmethod
    def segment_queries(topic: str, outline: Outline) -> dict[str, list[str]]:
        """Return research queries per main segment: the segment title, then its sections."""

        return {
            segment.id: [
                f"{topic} {segment.title}",
                *(f"{topic} {section.title}" for section in segment.sections),
            ]
            for segment in outline.segments
        }
