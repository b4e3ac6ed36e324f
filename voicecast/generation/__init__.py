"""Long-form script generation: unit planning, generation, and compilation."""

from .compiler import CompilationStage, format_timestamp
from .generator import OverlappingContextGenerator, stage_for_position, unit_variant
from .planner import plan_generation_units, section_tokens

__all__ = [
    "CompilationStage",
    "OverlappingContextGenerator",
    "format_timestamp",
    "plan_generation_units",
    "section_tokens",
    "stage_for_position",
    "unit_variant",
]
