"""Unit tests for requests-based provider clients, caching, and rate limiting."""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from voicecast.errors import ProviderError
from voicecast.providers import http as provider_http
from voicecast.providers.anthropic import AnthropicChatClient
from voicecast.providers.base import CompletionOptions, SearchResult
from voicecast.providers.cache import ResponseCache
from voicecast.providers.openai import OpenAIChatClient, OpenAIImageClient, OpenAISpeechClient
from voicecast.providers.perplexity import PerplexitySearchClient
from voicecast.providers.rate_limiter import RateLimiter


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(self, *, payload: bytes, status_code: int = 200) -> None:
        self.content = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class _RecordingPost:
    """Stand-in for `requests.post` returning queued responses and recording calls."""

    def __init__(self, *responses: _MockRequestsResponse | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def __call__(self, url: str, **kwargs: Any) -> _MockRequestsResponse:
        self.calls.append({"url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class _RecordingRateLimiter:
    def __init__(self) -> None:
        self.keys: list[str] = []

    def acquire(self, key: str) -> None:
        self.keys.append(key)


def _json_response(payload: dict[str, Any], status_code: int = 200) -> _MockRequestsResponse:
    return _MockRequestsResponse(payload=json.dumps(payload).encode("utf-8"), status_code=status_code)


def _patch_post(monkeypatch: pytest.MonkeyPatch, post: _RecordingPost) -> None:
    monkeypatch.setattr(provider_http.requests, "post", post)


def test_openai_chat_client_sends_messages_and_extracts_text(monkeypatch: pytest.MonkeyPatch) -> None:
    post = _RecordingPost(
        _json_response({"choices": [{"message": {"content": "  Hello there.  "}}]})
    )
    _patch_post(monkeypatch, post)
    limiter = _RecordingRateLimiter()
    client = OpenAIChatClient(model="gpt-4o", api_key="sk-test", rate_limiter=limiter)  # type: ignore[arg-type]

    text = client.complete("Prompt", "System", CompletionOptions(max_tokens=150, temperature=0.3))

    assert text == "Hello there."
    call = post.calls[0]
    assert call["url"] == "https://api.openai.com/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert call["json"]["messages"] == [
        {"role": "system", "content": "System"},
        {"role": "user", "content": "Prompt"},
    ]
    assert call["json"]["max_tokens"] == 150
    assert limiter.keys == ["openai"]


def test_openai_chat_client_rejects_empty_content(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_post(monkeypatch, _RecordingPost(_json_response({"choices": [{"message": {"content": ""}}]})))

    with pytest.raises(ProviderError) as exc_info:
        OpenAIChatClient(api_key="sk-test").complete("Prompt", "System")
    assert exc_info.value.failure_kind == "malformed"


def test_missing_api_key_fails_before_any_request(monkeypatch: pytest.MonkeyPatch) -> None:
    post = _RecordingPost()
    _patch_post(monkeypatch, post)

    with pytest.raises(ProviderError, match="OPENAI_API_KEY") as exc_info:
        OpenAIChatClient(api_key="  ").complete("Prompt", "System")
    assert exc_info.value.failure_kind == "invalid_api_key"
    assert post.calls == []


def test_http_401_is_classified_and_redacted(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provider messages must never echo key material back to users."""

    body = {"error": {"message": "Incorrect API key provided: sk-abcdefgh12345678", "code": "invalid_api_key"}}
    _patch_post(monkeypatch, _RecordingPost(_json_response(body, status_code=401)))

    with pytest.raises(ProviderError) as exc_info:
        OpenAIChatClient(api_key="sk-test").complete("Prompt", "System")

    error = exc_info.value
    assert error.failure_kind == "invalid_api_key"
    assert error.status_code == 401
    assert "sk-abcdefgh12345678" not in str(error)
    assert "[redacted-key]" in str(error)


def test_http_429_quota_is_classified(monkeypatch: pytest.MonkeyPatch) -> None:
    body = {"error": {"message": "You exceeded your current quota.", "type": "insufficient_quota"}}
    _patch_post(monkeypatch, _RecordingPost(_json_response(body, status_code=429)))

    with pytest.raises(ProviderError) as exc_info:
        OpenAIChatClient(api_key="sk-test").complete("Prompt", "System")
    assert exc_info.value.failure_kind == "insufficient_quota"


@pytest.mark.parametrize(
    ("failure", "expected_kind"),
    [
        (requests.Timeout("read timed out"), "timeout"),
        (requests.ConnectionError("connection refused"), "transport"),
    ],
)
def test_transport_failures_are_classified(
    monkeypatch: pytest.MonkeyPatch, failure: Exception, expected_kind: str
) -> None:
    _patch_post(monkeypatch, _RecordingPost(failure))

    with pytest.raises(ProviderError) as exc_info:
        OpenAIChatClient(api_key="sk-test").complete("Prompt", "System")
    assert exc_info.value.failure_kind == expected_kind


def test_speech_client_returns_bytes_and_rejects_empty_audio(monkeypatch: pytest.MonkeyPatch) -> None:
    post = _RecordingPost(
        _MockRequestsResponse(payload=b"ID3-audio"),
        _MockRequestsResponse(payload=b""),
    )
    _patch_post(monkeypatch, post)
    client = OpenAISpeechClient(api_key="sk-test")

    assert client.synthesize_speech("Hello", "nova") == b"ID3-audio"
    assert post.calls[0]["json"]["voice"] == "nova"
    assert post.calls[0]["json"]["model"] == "tts-1"
    with pytest.raises(ProviderError, match="speech response is empty"):
        client.synthesize_speech("Hello", "nova")


def test_image_client_returns_first_url(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_post(
        monkeypatch,
        _RecordingPost(_json_response({"data": [{"url": "https://img.example.com/a.png"}]})),
    )

    assert OpenAIImageClient(api_key="sk-test").generate_image("A cat") == "https://img.example.com/a.png"


def test_anthropic_client_uses_key_header_and_joins_text_blocks(monkeypatch: pytest.MonkeyPatch) -> None:
    post = _RecordingPost(
        _json_response(
            {
                "content": [
                    {"type": "text", "text": "Part one. "},
                    {"type": "tool_use", "id": "x"},
                    {"type": "text", "text": "Part two."},
                ]
            }
        )
    )
    _patch_post(monkeypatch, post)

    text = AnthropicChatClient(api_key="ak-test").complete("Prompt", "System")

    assert text == "Part one. Part two."
    call = post.calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "ak-test"
    assert "Authorization" not in call["headers"]
    assert call["json"]["system"] == "System"


def test_perplexity_search_extracts_citations_and_reuses_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Repeated queries within one process are answered from the cache."""

    post = _RecordingPost(
        _json_response(
            {
                "choices": [{"message": {"content": "Tea began in China."}}],
                "citations": ["https://example.com/tea", ""],
            }
        )
    )
    _patch_post(monkeypatch, post)
    cache: ResponseCache[SearchResult] = ResponseCache()
    client = PerplexitySearchClient(api_key="pplx-test", cache=cache)

    first = client.search("History of tea")
    second = client.search("  history   OF tea ")

    assert first == SearchResult(answer="Tea began in China.", citations=("https://example.com/tea",))
    assert second == first
    assert len(post.calls) == 1
    assert cache.hits == 1


def test_perplexity_search_falls_back_to_links(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_post(
        monkeypatch,
        _RecordingPost(
            _json_response(
                {"choices": [{"message": {"content": "Answer."}}], "links": ["https://a.example"]}
            )
        ),
    )

    result = PerplexitySearchClient(api_key="pplx-test").search("query")

    assert result.citations == ("https://a.example",)


def test_response_cache_key_is_deterministic_and_normalized() -> None:
    key_one = ResponseCache.make_key(
        provider="Perplexity", model="sonar-pro", operation="search", input_identity="Hello   World"
    )
    key_two = ResponseCache.make_key(
        provider="perplexity", model="sonar-pro", operation="search", input_identity="hello world"
    )

    assert key_one == key_two
    assert key_one.startswith("response:perplexity:sonar-pro:search:")


def test_response_cache_is_bounded_lru() -> None:
    cache: ResponseCache[str] = ResponseCache(max_entries=2)
    cache.set("a", "1")
    cache.set("b", "2")
    assert cache.get("a") == "1"
    cache.set("c", "3")

    assert cache.get("b") is None
    assert cache.get("a") == "1"
    assert cache.hit_rate() == pytest.approx(2 / 3)


def test_rate_limiter_spaces_requests_per_key() -> None:
    now = [10.0]
    waits: list[float] = []
    limiter = RateLimiter(min_interval_seconds=0.5, clock=lambda: now[0], sleeper=waits.append)

    limiter.acquire("openai")
    limiter.acquire("openai")
    limiter.acquire("perplexity")

    assert waits == [0.5]
