"""Text preparation and segmentation components.

This package provides deterministic speech cleanup and boundary-aware chunking
used before speech synthesis.
"""

from .chunking import BoundaryChunker, split_text
from .cleaners import (
    CollapseBlankLines,
    NormalizeQuotes,
    SpeechTextCleaner,
    StripEmphasisMarkers,
    StripScriptHeadings,
)

__all__ = [
    "BoundaryChunker",
    "split_text",
    "SpeechTextCleaner",
    "StripScriptHeadings",
    "StripEmphasisMarkers",
    "NormalizeQuotes",
    "CollapseBlankLines",
]
