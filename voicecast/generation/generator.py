"""Sequential long-form generation with carried-forward context.

Responsibilities:
- Generate one content unit per plan, strictly in order.
- Seed every unit after the first with the tail of its predecessor.
- Map unit positions to opening, continue, or closing prompt variants.
"""

from __future__ import annotations

from typing import Callable, Mapping, Sequence

from loguru import logger

from ..jobs.cancellation import CancellationToken
from ..models.datatypes import ContentUnit, GenerationUnitPlan, ProjectState, ResearchResult
from ..pipeline.calls import call_provider
from ..providers.base import CompletionOptions, CompletionProvider
from ..providers.prompts import PromptLibrary
from ..telemetry.cost_tracker import CostTracker

DEFAULT_OVERLAP_CHARS = 1000


def stage_for_position(relative_position: float) -> str:
    """Map a relative position in `[0, 1)` to a narrative stage hint."""

    if relative_position < 0.33:
        return "early"
    if relative_position < 0.66:
        return "middle"
    return "late"


def unit_variant(index: int, total: int) -> tuple[str, str]:
    """Return `(variant, stage)` for the unit at `index` of `total`."""

    if total == 1:
        return "standalone", "opening"
    if index == 0:
        return "opening", "opening"
    if index == total - 1:
        return "closing", "closing"
    return "continue", stage_for_position(index / total)


class OverlappingContextGenerator:
    """Generate content units one at a time, each seeded by its predecessor."""

    def __init__(
        self,
        completion: CompletionProvider,
        *,
        prompts: PromptLibrary | None = None,
        overlap_chars: int = DEFAULT_OVERLAP_CHARS,
        timeout_seconds: float = 120.0,
        max_tokens: int = 4000,
    ) -> None:
        if overlap_chars < 0:
            raise ValueError("`overlap_chars` must not be negative.")
        self.completion = completion
        self.prompts = prompts or PromptLibrary()
        self.overlap_chars = overlap_chars
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

    def tail_window(self, text: str) -> str:
        """Return the trailing context window handed to the next unit."""

        if self.overlap_chars == 0:
            return ""
        return text[-self.overlap_chars :]

    async def generate(
        self,
        project: ProjectState,
        plans: Sequence[GenerationUnitPlan],
        token: CancellationToken | None = None,
        on_unit: Callable[[tuple[ContentUnit, ...], int], None] | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> tuple[ContentUnit, ...]:
        """Generate every planned unit in order.

        Args:
            project: Snapshot providing topic, narrative guide, outline, and research.
            plans: Ordered generation-unit plans.
            token: Cancellation token checked before every unit.
            on_unit: Called with all units so far and the plan count after each unit.
            cost_tracker: Optional usage accumulator.
        """

        research_by_section = self._research_by_section(project)
        units: list[ContentUnit] = []
        seed = ""
        total = len(plans)
        for index, plan in enumerate(plans):
            if token is not None:
                token.raise_if_cancelled()
            variant, stage = unit_variant(index, total)
            notes = [
                note
                for section in plan.sections
                for note in research_by_section.get(section.id, ())
            ]
            prompt = self.prompts.generation_unit_prompt(
                topic=project.topic,
                variant=variant,
                stage=stage,
                sections=plan.sections,
                seed=seed,
                narrative_guide=project.narrative_guide,
                research_notes=notes[:6],
            )
            logger.debug("Generating unit {}/{} ({}, {}).", index + 1, total, variant, stage)
            text = await call_provider(
                self.completion.complete,
                prompt,
                self.prompts.generation_system_prompt(),
                CompletionOptions(max_tokens=self.max_tokens, temperature=0.7),
                token=token,
                timeout_seconds=self.timeout_seconds,
                operation="content generation",
            )
            text = text.strip()
            if cost_tracker is not None:
                cost_tracker.add_llm_usage(prompt, text)
            is_last = index == total - 1
            unit = ContentUnit(
                id=f"unit-{plan.position}",
                position=plan.position,
                section_ids=tuple(section.id for section in plan.sections),
                text=text,
                trailing_context_used=seed,
                leading_context_produced="" if is_last else self.tail_window(text),
                stage=stage,
            )
            units.append(unit)
            seed = unit.leading_context_produced
            if on_unit is not None:
                on_unit(tuple(units), total)
        return tuple(units)

    @staticmethod
    def _research_by_section(project: ProjectState) -> Mapping[str, tuple[ResearchResult, ...]]:
        """Index segment research by the ids of the sections each segment holds."""

        if project.outline is None or project.research_data is None:
            return {}
        segment_research = project.research_data.segment_research
        indexed: dict[str, tuple[ResearchResult, ...]] = {}
        for segment in project.outline.segments:
            results = segment_research.get(segment.id, ())
            for section in segment.sections:
                indexed[section.id] = tuple(results)
        return indexed
