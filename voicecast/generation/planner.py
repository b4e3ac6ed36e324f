"""Generation-unit planning over outline sections.

Responsibilities:
- Estimate section sizes in tokens from explicit estimates or spoken duration.
- Pack consecutive sections greedily into units under a token ceiling.
"""

from __future__ import annotations

from ..models.datatypes import GenerationUnitPlan, Outline, OutlineSection

DEFAULT_TOKEN_CEILING = 3000
DEFAULT_TOKENS_PER_MINUTE = 750


def section_tokens(section: OutlineSection, tokens_per_minute: int = DEFAULT_TOKENS_PER_MINUTE) -> int:
    """Return the section's token estimate, deriving it from duration when absent."""

    if section.estimated_tokens > 0:
        return section.estimated_tokens
    return int(round(section.estimated_duration_minutes * tokens_per_minute))


def plan_generation_units(
    outline: Outline,
    token_ceiling: int = DEFAULT_TOKEN_CEILING,
    tokens_per_minute: int = DEFAULT_TOKENS_PER_MINUTE,
) -> list[GenerationUnitPlan]:
    """Pack the outline's ordered sections into generation units.

    A unit closes when the next section would push it over `token_ceiling`. A
    section larger than the ceiling still gets a unit of its own, so no unit is
    ever empty and every section is planned exactly once.
    """

    if token_ceiling < 1:
        raise ValueError("`token_ceiling` must be at least 1.")

    plans: list[GenerationUnitPlan] = []
    current: list[OutlineSection] = []
    current_tokens = 0
    for section in outline.ordered_sections():
        tokens = section_tokens(section, tokens_per_minute)
        if current and current_tokens + tokens > token_ceiling:
            plans.append(
                GenerationUnitPlan(position=len(plans), sections=tuple(current), total_tokens=current_tokens)
            )
            current, current_tokens = [], 0
        current.append(section)
        current_tokens += tokens
    if current:
        plans.append(
            GenerationUnitPlan(position=len(plans), sections=tuple(current), total_tokens=current_tokens)
        )
    return plans
