"""Cleaning rules for formatted podcast scripts.

Responsibilities:
- Remove script headings and emphasis markup that must not be read aloud.
- Keep cleanup deterministic so chunking offsets are reproducible.
"""

from __future__ import annotations

import re
from typing import Protocol


class CleanerRule(Protocol):
    """Protocol for text cleaning rules."""

    def apply(self, text: str) -> str:
        """Apply a single cleaning transformation."""


class StripScriptHeadings:
    """Remove the `# title` line and `## [HH:MM] ...` markers added by script formatting."""

    _TITLE_RE = re.compile(r"\A\s*# [^\n]*")
    _MARKER_RE = re.compile(r"(?m)^## \[\d{2}:\d{2}\] .*$")

    def apply(self, text: str) -> str:
        return self._MARKER_RE.sub("", self._TITLE_RE.sub("", text))


class StripEmphasisMarkers:
    """Drop markdown bold/italic markers while keeping the wrapped words."""

    def apply(self, text: str) -> str:
        return re.sub(r"(?<![\w*])(\*{1,3}|_{2,3})(\S(?:.*?\S)?)\1(?![\w*])", r"\2", text)


class NormalizeQuotes:
    """Normalize typographic quotes to ASCII equivalents."""

    def apply(self, text: str) -> str:
        return (
            text.replace("“", '"')
            .replace("”", '"')
            .replace("‘", "'")
            .replace("’", "'")
        )


class CollapseBlankLines:
    """Collapse runs of blank lines left behind by removed markup."""

    def apply(self, text: str) -> str:
        text = re.sub(r"[ \t]+\n", "\n", text)
        return re.sub(r"\n{3,}", "\n\n", text).strip()


class SpeechTextCleaner:
    """Apply a sequence of deterministic cleaner rules before synthesis."""

    def __init__(self, rules: list[CleanerRule] | None = None) -> None:
        """Initialize with custom rules or the default script-cleaning sequence."""

        self.rules = rules or [
            StripScriptHeadings(),
            StripEmphasisMarkers(),
            NormalizeQuotes(),
            CollapseBlankLines(),
        ]

    def clean(self, text: str) -> str:
        """Apply all configured rules in order."""

        current = text
        for rule in self.rules:
            current = rule.apply(current)
        return current
