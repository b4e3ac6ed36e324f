"""Chat, web search, and voice samples over the provider capabilities.

Responsibilities:
- Answer chat conversations, optionally grounded in a supplied text.
- Run single web searches with the configured retry policy.
- Synthesize one short sample per voice and reuse it while its file exists.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from ..audio.materializer import AudioMaterializer
from ..audio.storage import AudioStore
from ..config import AVAILABLE_VOICES, VoicecastConfig
from ..errors import InputValidationError
from ..pipeline.calls import call_provider
from ..providers.base import CompletionOptions, SearchResult
from ..providers.factory import ProviderSet
from ..providers.prompts import PromptLibrary

CHAT_ROLES = ("user", "assistant", "system")
VOICE_SAMPLE_TEXT = (
    "Hello! This is a short sample of how this voice sounds when it reads your text aloud."
)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str
    content: str


class AssistantService:
    """Serve interactive requests that need a single provider call."""

    def __init__(
        self,
        *,
        config: VoicecastConfig,
        providers: ProviderSet,
        store: AudioStore,
        prompts: PromptLibrary | None = None,
    ) -> None:
        self.config = config
        self.providers = providers
        self.store = store
        self.prompts = prompts or PromptLibrary()
        self.materializer = AudioMaterializer(
            providers.speech,
            store,
            chunk_chars=config.tts_chunk_chars,
            timeout_seconds=config.provider_timeout_seconds,
        )
        self._samples: dict[str, str] = {}
        self._sample_lock = asyncio.Lock()

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        context: str = "",
        use_context: bool = True,
    ) -> str:
        """Return the assistant's reply to the last user message.

        System messages are dropped; the persona comes from the prompt library.

        Raises:
            InputValidationError: If a role is unknown or no user turn ends the conversation.
            ProviderError: If the completion call fails.
        """

        unknown = next((message.role for message in messages if message.role not in CHAT_ROLES), None)
        if unknown is not None:
            raise InputValidationError(f"Unsupported message role `{unknown}`")
        turns = [(message.role, message.content) for message in messages if message.role != "system"]
        if not turns or turns[-1][0] != "user" or not turns[-1][1].strip():
            raise InputValidationError("The conversation must end with a user message")

        grounding = context.strip() if use_context else ""
        logger.info("Chat request with {} turn(s), context {} characters.", len(turns), len(grounding))
        reply = await call_provider(
            self.providers.completion.complete,
            self.prompts.chat_prompt(turns),
            self.prompts.chat_system_prompt(grounding),
            CompletionOptions(max_tokens=1000, temperature=0.7),
            timeout_seconds=self.config.provider_timeout_seconds,
            operation="chat completion",
        )
        return reply.strip()

    async def search(self, query: str) -> SearchResult:
        normalized = query.strip()
        if not normalized:
            raise InputValidationError("Query cannot be empty")
        return await call_provider(
            self.providers.search.search,
            normalized,
            timeout_seconds=self.config.provider_timeout_seconds,
            retries=self.config.search_retries,
            operation="web search",
        )

    async def voice_sample(self, voice: str) -> str:
        """Return the audio URL of the sample for `voice`, synthesizing it on first use."""

        if voice not in AVAILABLE_VOICES:
            raise InputValidationError("Please select a valid voice")
        async with self._sample_lock:
            url = self._samples.get(voice)
            filename = self.store.filename_from_url(url) if url is not None else None
            if filename is not None and self.store.resolve(filename) is not None:
                return url
            audio = await self.materializer.materialize(VOICE_SAMPLE_TEXT, voice)
            logger.info("Synthesized voice sample for {}.", voice)
            self._samples[voice] = audio.url
            return audio.url
