"""Research and planning services backing podcast projects."""

from .narrative import NarrativeService, parse_outline
from .service import (
    ResearchService,
    extract_json_object,
    parse_research_data,
    parse_topic_analysis,
)

__all__ = [
    "NarrativeService",
    "ResearchService",
    "extract_json_object",
    "parse_outline",
    "parse_research_data",
    "parse_topic_analysis",
]
