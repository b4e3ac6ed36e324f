"""OpenAI HTTP clients for completion, speech, and artwork.

Responsibilities:
- Send chat-completions, speech, and image-generation requests.
- Normalize response extraction into plain strings and bytes.
"""

from __future__ import annotations

from typing import Any

from .base import CompletionOptions
from .http import JsonHttpClient


class _OpenAIBaseClient(JsonHttpClient):
    """Shared OpenAI settings."""

    provider_id = "openai"
    provider_label = "OpenAI"
    api_key_env = "OPENAI_API_KEY"
    default_base_url = "https://api.openai.com/v1"


class OpenAIChatClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI chat-completions client."""

    def __init__(self, *, model: str = "gpt-4o", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.model = model

    def complete(
        self,
        prompt: str,
        system_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        """Return the first assistant text response for the prompt."""

        options = options or CompletionOptions()
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        response = self._post_json(endpoint_path="/chat/completions", payload=payload)
        return self._extract_message_text(response)

    def _extract_message_text(self, payload: dict[str, Any]) -> str:
        """Extract the first assistant message text from a chat-completions payload."""

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise self._malformed("response missing non-empty `choices` list.")

        first_choice = choices[0]
        if not isinstance(first_choice, dict):
            raise self._malformed("response `choices[0]` is malformed.")

        message = first_choice.get("message")
        if not isinstance(message, dict):
            raise self._malformed("response missing `choices[0].message` object.")

        text = message_content_to_text(message.get("content")).strip()
        if not text:
            raise self._malformed("response message content is empty.")
        return text


def message_content_to_text(content: Any) -> str:
    """Convert chat message content variants into a plain text string."""

    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            item["text"]
            for item in content
            if isinstance(item, dict)
            and item.get("type") == "text"
            and isinstance(item.get("text"), str)
        )
    return ""


class OpenAISpeechClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI speech client."""

    max_input_chars = 4000

    def __init__(
        self,
        *,
        model: str = "tts-1",
        response_format: str = "mp3",
        speed: float = 1.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.model = model
        self.response_format = response_format
        self.speed = speed

    def synthesize_speech(self, text: str, voice: str) -> bytes:
        """Return synthesized audio bytes from `/audio/speech`."""

        payload = {
            "model": self.model,
            "voice": voice,
            "input": text,
            "response_format": self.response_format,
            "speed": self.speed,
        }
        return self._post_json_bytes(
            endpoint_path="/audio/speech",
            payload=payload,
            require_non_empty_response=True,
            empty_response_message="OpenAI speech response is empty.",
        )


class OpenAIImageClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI image-generation client."""

    def __init__(
        self,
        *,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.model = model
        self.size = size

    def generate_image(self, prompt: str) -> str:
        """Return the URL of the first generated image."""

        payload = {"model": self.model, "prompt": prompt, "n": 1, "size": self.size}
        response = self._post_json(endpoint_path="/images/generations", payload=payload)
        data = response.get("data")
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise self._malformed("image response missing non-empty `data` list.")
        url = data[0].get("url")
        if not isinstance(url, str) or not url.strip():
            raise self._malformed("image response missing `data[0].url`.")
        return url.strip()
