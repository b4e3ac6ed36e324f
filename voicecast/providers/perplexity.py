"""Perplexity search client backed by its chat-completions endpoint.

Responsibilities:
- Turn one research query into an answer plus source citations.
- Reuse answers for repeated queries through the shared response cache.
"""

from __future__ import annotations

from typing import Any

from .base import SearchResult
from .cache import ResponseCache
from .http import JsonHttpClient
from .openai import message_content_to_text

RESEARCH_SYSTEM_PROMPT = (
    "You are a comprehensive research assistant. Provide detailed, factual information "
    "from reliable sources, including relevant data, expert opinions, statistics, and "
    "historical context."
)


class PerplexitySearchClient(JsonHttpClient):
    """Minimal requests-based Perplexity search client."""

    provider_id = "perplexity"
    provider_label = "Perplexity"
    api_key_env = "PERPLEXITY_API_KEY"
    default_base_url = "https://api.perplexity.ai"

    def __init__(
        self,
        *,
        model: str = "sonar-pro",
        max_tokens: int = 4000,
        cache: ResponseCache[SearchResult] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.model = model
        self.max_tokens = max_tokens
        self.cache = cache

    def search(self, query: str) -> SearchResult:
        """Return the researched answer and citations for `query`."""

        cache_key = ResponseCache.make_key(
            provider=self.provider_id,
            model=self.model,
            operation="search",
            input_identity=query,
        )
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
            "max_tokens": self.max_tokens,
            "temperature": 0.2,
            "return_images": False,
            "stream": False,
        }
        response = self._post_json(endpoint_path="/chat/completions", payload=payload)
        result = SearchResult(
            answer=self._extract_answer(response),
            citations=self._extract_citations(response),
        )
        if self.cache is not None:
            self.cache.set(cache_key, result)
        return result

    def _extract_answer(self, payload: dict[str, Any]) -> str:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise self._malformed("response missing non-empty `choices` list.")
        message = choices[0].get("message")
        if not isinstance(message, dict):
            raise self._malformed("response missing `choices[0].message` object.")
        return message_content_to_text(message.get("content")).strip()

    @staticmethod
    def _extract_citations(payload: dict[str, Any]) -> tuple[str, ...]:
        """Read `citations`, falling back to the older `links` field."""

        for key in ("citations", "links"):
            value = payload.get(key)
            if isinstance(value, list):
                return tuple(str(item) for item in value if isinstance(item, str) and item.strip())
        return ()
