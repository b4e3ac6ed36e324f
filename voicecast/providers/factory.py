"""Provider factory helpers for completion, speech, search, and artwork.

Responsibilities:
- Resolve configured provider identifiers to concrete clients.
- Keep services independent from concrete provider class construction.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import ProviderApiKeys, VoicecastConfig
from .anthropic import AnthropicChatClient
from .base import (
    CompletionProvider,
    ImageProvider,
    SearchProvider,
    SearchResult,
    SpeechProvider,
)
from .cache import ResponseCache
from .openai import OpenAIChatClient, OpenAIImageClient, OpenAISpeechClient
from .perplexity import PerplexitySearchClient
from .rate_limiter import RateLimiter


@dataclass(frozen=True, slots=True)
class ProviderSet:
    """Concrete capability clients used by one service instance."""

    completion: CompletionProvider
    speech: SpeechProvider
    search: SearchProvider
    image: ImageProvider


class ProviderFactory:
    """Factory for provider-backed capability clients."""

    @staticmethod
    def create_completion(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 120.0,
        rate_limiter: RateLimiter | None = None,
    ) -> CompletionProvider:
        """Create a completion client for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAIChatClient(
                model=model,
                api_key=api_key,
                timeout_seconds=timeout_seconds,
                rate_limiter=rate_limiter,
            )
        if provider_id == "anthropic":
            return AnthropicChatClient(
                model=model,
                api_key=api_key,
                timeout_seconds=timeout_seconds,
                rate_limiter=rate_limiter,
            )
        raise ValueError(f"Unsupported completion provider `{provider_id}`.")

    @staticmethod
    def create_speech(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 120.0,
        rate_limiter: RateLimiter | None = None,
    ) -> SpeechProvider:
        """Create a speech client for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAISpeechClient(
                model=model,
                api_key=api_key,
                timeout_seconds=timeout_seconds,
                rate_limiter=rate_limiter,
            )
        raise ValueError(f"Unsupported speech provider `{provider_id}`.")

    @staticmethod
    def create_search(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 120.0,
        rate_limiter: RateLimiter | None = None,
        cache: ResponseCache[SearchResult] | None = None,
    ) -> SearchProvider:
        """Create a search client for a configured provider identifier."""

        if provider_id == "perplexity":
            return PerplexitySearchClient(
                model=model,
                api_key=api_key,
                timeout_seconds=timeout_seconds,
                rate_limiter=rate_limiter,
                cache=cache,
            )
        raise ValueError(f"Unsupported search provider `{provider_id}`.")

    @staticmethod
    def create_image(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 120.0,
        rate_limiter: RateLimiter | None = None,
    ) -> ImageProvider:
        """Create an artwork client for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAIImageClient(
                model=model,
                api_key=api_key,
                timeout_seconds=timeout_seconds,
                rate_limiter=rate_limiter,
            )
        raise ValueError(f"Unsupported image provider `{provider_id}`.")

    @classmethod
    def create_set(cls, config: VoicecastConfig, api_keys: ProviderApiKeys) -> ProviderSet:
        """Build every configured client with a shared limiter and search cache."""

        limiter = RateLimiter()
        timeout = config.provider_timeout_seconds
        return ProviderSet(
            completion=cls.create_completion(
                config.provider_completion,
                config.completion_model,
                api_keys.for_provider(config.provider_completion),
                timeout_seconds=timeout,
                rate_limiter=limiter,
            ),
            speech=cls.create_speech(
                config.provider_speech,
                config.model_speech,
                api_keys.for_provider(config.provider_speech),
                timeout_seconds=timeout,
                rate_limiter=limiter,
            ),
            search=cls.create_search(
                config.provider_search,
                config.model_search,
                api_keys.for_provider(config.provider_search),
                timeout_seconds=timeout,
                rate_limiter=limiter,
                cache=ResponseCache(),
            ),
            image=cls.create_image(
                config.provider_image,
                config.model_image,
                api_keys.for_provider(config.provider_image),
                timeout_seconds=timeout,
                rate_limiter=limiter,
            ),
        )
