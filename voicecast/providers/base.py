"""Provider capability contracts.

Responsibilities:
- Describe each third-party capability as a narrow structural protocol.
- Keep services independent from concrete HTTP client classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class CompletionOptions:
    """Per-call completion settings."""

    max_tokens: int = 4000
    temperature: float = 0.7


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Answer text and source citations returned by a search provider."""

    answer: str
    citations: tuple[str, ...] = ()


class CompletionProvider(Protocol):
    """Text completion capability."""

    provider_id: str

    def complete(
        self,
        prompt: str,
        system_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        """Return completion text for the prompt."""


class SpeechProvider(Protocol):
    """Speech synthesis capability."""

    provider_id: str
    max_input_chars: int

    def synthesize_speech(self, text: str, voice: str) -> bytes:
        """Return encoded audio bytes for the text."""


class SearchProvider(Protocol):
    """Web research capability."""

    provider_id: str

    def search(self, query: str) -> SearchResult:
        """Return a researched answer for the query."""


class ImageProvider(Protocol):
    """Artwork generation capability."""

    provider_id: str

    def generate_image(self, prompt: str) -> str:
        """Return a URL of the generated image."""
