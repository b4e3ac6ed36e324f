"""Provider capability contracts and requests-based HTTP clients."""

from .anthropic import AnthropicChatClient
from .base import (
    CompletionOptions,
    CompletionProvider,
    ImageProvider,
    SearchProvider,
    SearchResult,
    SpeechProvider,
)
from .cache import ResponseCache
from .factory import ProviderFactory, ProviderSet
from .openai import OpenAIChatClient, OpenAIImageClient, OpenAISpeechClient
from .perplexity import PerplexitySearchClient
from .prompts import PromptLibrary
from .rate_limiter import RateLimiter

__all__ = [
    "AnthropicChatClient",
    "CompletionOptions",
    "CompletionProvider",
    "ImageProvider",
    "OpenAIChatClient",
    "OpenAIImageClient",
    "OpenAISpeechClient",
    "PerplexitySearchClient",
    "PromptLibrary",
    "ProviderFactory",
    "ProviderSet",
    "RateLimiter",
    "ResponseCache",
    "SearchProvider",
    "SearchResult",
    "SpeechProvider",
]
