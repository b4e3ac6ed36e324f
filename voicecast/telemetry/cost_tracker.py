"""Cost accounting for LLM, search, and TTS usage.

Responsibilities:
- Estimate token usage from text sizes when providers do not report it.
- Track provider usage costs per capability for project snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

CHARS_PER_TOKEN = 4
LLM_COST_PER_1K_TOKENS_USD = 0.01
SEARCH_COST_PER_QUERY_USD = 0.005
TTS_COST_PER_1K_CHARS_USD = 0.015


def estimate_tokens(text: str) -> int:
    """Return a rough token count for text (four characters per token)."""

    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(slots=True)
class CostTracker:
    """Collect and summarize run-level usage counters."""

    llm_tokens: int = 0
    search_queries: int = 0
    tts_characters: int = 0

    def add_llm_usage(self, prompt: str, completion: str) -> None:
        """Add estimated tokens for one completion round trip."""

        self.llm_tokens += estimate_tokens(prompt) + estimate_tokens(completion)

    def add_search_usage(self, queries: int = 1) -> None:
        self.search_queries += max(0, queries)

    def add_tts_usage(self, characters: int) -> None:
        self.tts_characters += max(0, characters)

    @property
    def llm_cost_usd(self) -> float:
        return self.llm_tokens / 1000.0 * LLM_COST_PER_1K_TOKENS_USD

    @property
    def search_cost_usd(self) -> float:
        return self.search_queries * SEARCH_COST_PER_QUERY_USD

    @property
    def tts_cost_usd(self) -> float:
        return self.tts_characters / 1000.0 * TTS_COST_PER_1K_CHARS_USD

    @property
    def total_cost_usd(self) -> float:
        return round(self.llm_cost_usd + self.search_cost_usd + self.tts_cost_usd, 6)

    def summary(self) -> dict[str, float]:
        """Return a summary dictionary for logs and project snapshots."""

        return {
            "llm_cost_usd": self.llm_cost_usd,
            "search_cost_usd": self.search_cost_usd,
            "tts_cost_usd": self.tts_cost_usd,
            "total_cost_usd": self.total_cost_usd,
        }
