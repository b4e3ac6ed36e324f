"""Unit tests for generation-unit planning, chained generation, and compilation."""

from __future__ import annotations

import asyncio

import pytest

from voicecast.errors import JobCanceledError
from voicecast.generation.compiler import CompilationStage, format_timestamp
from voicecast.generation.generator import OverlappingContextGenerator, unit_variant
from voicecast.generation.planner import plan_generation_units, section_tokens
from voicecast.jobs.cancellation import CancellationToken
from voicecast.models.datatypes import (
    ContentUnit,
    Outline,
    OutlineSection,
    OutlineSegment,
    ProjectState,
)
from voicecast.providers.factory import ProviderSet


def _outline() -> Outline:
    return Outline(
        title="The Story of Tea",
        introduction=OutlineSection(
            id="intro", title="Welcome", estimated_duration_minutes=1, estimated_tokens=750
        ),
        segments=(
            OutlineSegment(
                id="seg-1",
                title="Leaves and Legends",
                sections=(
                    OutlineSection(
                        id="s-1", title="First Cups", estimated_duration_minutes=2, estimated_tokens=1500
                    ),
                    OutlineSection(
                        id="s-2", title="Trade Routes", estimated_duration_minutes=2, estimated_tokens=1500
                    ),
                ),
                estimated_duration_minutes=4,
            ),
        ),
        conclusion=OutlineSection(
            id="outro", title="Last Sip", estimated_duration_minutes=1, estimated_tokens=750
        ),
        estimated_duration_minutes=6,
    )


def test_planner_packs_consecutive_sections_under_ceiling() -> None:
    plans = plan_generation_units(_outline(), token_ceiling=3000)

    assert [plan.position for plan in plans] == [0, 1]
    assert [[section.id for section in plan.sections] for plan in plans] == [
        ["intro", "s-1"],
        ["s-2", "outro"],
    ]
    assert [plan.total_tokens for plan in plans] == [2250, 2250]


def test_planner_gives_oversized_section_its_own_unit() -> None:
    """Every section is planned exactly once even when it exceeds the ceiling."""

    plans = plan_generation_units(_outline(), token_ceiling=1000)

    planned = [section.id for plan in plans for section in plan.sections]
    assert planned == ["intro", "s-1", "s-2", "outro"]
    assert all(plan.sections for plan in plans)
    assert len(plans) == 4


def test_section_tokens_fall_back_to_duration() -> None:
    section = OutlineSection(id="x", title="X", estimated_duration_minutes=2)

    assert section_tokens(section, tokens_per_minute=750) == 1500


@pytest.mark.parametrize(
    ("index", "total", "expected"),
    [
        (0, 1, ("standalone", "opening")),
        (0, 3, ("opening", "opening")),
        (1, 3, ("continue", "middle")),
        (2, 3, ("closing", "closing")),
        (1, 10, ("continue", "early")),
        (8, 10, ("continue", "late")),
    ],
)
def test_unit_variant_by_position(index: int, total: int, expected: tuple[str, str]) -> None:
    assert unit_variant(index, total) == expected


def _project(outline: Outline) -> ProjectState:
    return ProjectState(
        id=1,
        topic="Tea",
        target_duration_minutes=6,
        voice="alloy",
        outline=outline,
        narrative_guide="Arc: curiosity to insight.",
    )


def test_generator_seeds_each_unit_with_previous_tail(fake_providers: ProviderSet) -> None:
    """Unit N+1 must be generated from the exact tail produced by unit N."""

    outline = _outline()
    plans = plan_generation_units(outline, token_ceiling=1000)
    generator = OverlappingContextGenerator(fake_providers.completion, overlap_chars=20)
    progress: list[tuple[int, int]] = []

    units = asyncio.run(
        generator.generate(
            _project(outline),
            plans,
            on_unit=lambda done, total: progress.append((len(done), total)),
        )
    )

    assert [unit.position for unit in units] == [0, 1, 2, 3]
    assert units[0].trailing_context_used == ""
    for previous, current in zip(units, units[1:]):
        assert previous.leading_context_produced == previous.text[-20:]
        assert current.trailing_context_used == previous.leading_context_produced
    assert units[-1].leading_context_produced == ""
    assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]

    prompts = fake_providers.completion.prompts
    assert "the introduction" in prompts[0]
    assert "CONTEXT FROM PREVIOUS CONTENT" not in prompts[0]
    assert units[0].leading_context_produced in prompts[1]
    assert "the conclusion" in prompts[3]


def test_generator_stops_when_canceled(fake_providers: ProviderSet) -> None:
    outline = _outline()
    token = CancellationToken()
    token.cancel()
    generator = OverlappingContextGenerator(fake_providers.completion)

    with pytest.raises(JobCanceledError):
        asyncio.run(generator.generate(_project(outline), plan_generation_units(outline), token))
    assert fake_providers.completion.prompts == []


def _unit(position: int, text: str, seed: str = "") -> ContentUnit:
    return ContentUnit(
        id=f"unit-{position}",
        position=position,
        section_ids=(),
        text=text,
        trailing_context_used=seed,
    )


def test_compiler_orders_units_and_removes_echoed_seed() -> None:
    """Units are joined by position; a verbatim seed echo is dropped."""

    units = [
        _unit(1, "sentence two is longer. Beta continues here.", seed="sentence two is longer."),
        _unit(0, "Alpha sentence one. Alpha sentence two is longer."),
    ]

    script = CompilationStage().compile(units)

    assert script == "Alpha sentence one. Alpha sentence two is longer.\n\nBeta continues here."


def test_compiler_removes_long_suffix_prefix_overlap() -> None:
    units = [
        _unit(0, "Alpha sentence one. Alpha sentence two is longer."),
        _unit(1, "Alpha sentence two is longer. Beta next."),
    ]

    assert CompilationStage().compile(units).endswith("longer.\n\nBeta next.")


def test_compiler_drops_repeated_leading_sentences() -> None:
    units = [_unit(0, "One fine day. Short."), _unit(1, "Short. New idea here.")]

    assert CompilationStage().compile(units) == "One fine day. Short.\n\nNew idea here."


def test_compiler_keeps_distinct_content() -> None:
    units = [_unit(0, "First part."), _unit(1, "Second part.")]

    assert CompilationStage().compile(units) == "First part.\n\nSecond part."


def test_format_script_inserts_title_and_ordered_markers() -> None:
    """Markers carry cumulative start times and never reorder paragraphs."""

    script = "\n\n".join(["Intro words.", "Cup history.", "Trade history.", "Goodbye words."])

    formatted = CompilationStage().format_script(script, _outline())

    assert formatted.startswith("# The Story of Tea\n\n## [00:00] Introduction: Welcome\n\nIntro words.")
    assert "## [00:01] Leaves and Legends" in formatted
    assert "## [00:05] Conclusion: Last Sip" in formatted
    positions = [formatted.index(text) for text in ("Intro words.", "Cup history.", "Trade history.", "Goodbye words.")]
    assert positions == sorted(positions)
    assert formatted.index("[00:00]") < formatted.index("[00:01]") < formatted.index("[00:05]")


def test_format_timestamp() -> None:
    assert format_timestamp(0) == "00:00"
    assert format_timestamp(65) == "01:05"
