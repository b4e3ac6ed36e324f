"""Anthropic messages-API completion client."""

from __future__ import annotations

from typing import Any

from .base import CompletionOptions
from .http import JsonHttpClient
from .openai import message_content_to_text


class AnthropicChatClient(JsonHttpClient):
    """Minimal requests-based Anthropic messages client."""

    provider_id = "anthropic"
    provider_label = "Anthropic"
    api_key_env = "ANTHROPIC_API_KEY"
    default_base_url = "https://api.anthropic.com/v1"
    api_version = "2023-06-01"

    def __init__(self, *, model: str = "claude-3-7-sonnet-20250219", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.model = model

    def _auth_headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": self.api_version}

    def complete(
        self,
        prompt: str,
        system_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        """Return the concatenated text blocks of one messages response."""

        options = options or CompletionOptions()
        payload = {
            "model": self.model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        response = self._post_json(endpoint_path="/messages", payload=payload)
        text = message_content_to_text(response.get("content")).strip()
        if not text:
            raise self._malformed("response contains no text content blocks.")
        return text
