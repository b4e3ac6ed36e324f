"""Shared pytest fixtures and deterministic provider fakes for the Voicecast suite."""

from __future__ import annotations

import json
from pathlib import Path
import threading
import time
from typing import Callable, Iterator

from fastapi.testclient import TestClient
import pytest

from voicecast.api.app import create_app
from voicecast.config import VoicecastConfig
from voicecast.errors import ProviderError
from voicecast.providers.base import CompletionOptions, SearchResult
from voicecast.providers.factory import ProviderSet

TOPIC_ANALYSIS = {
    "mainAreas": [
        {
            "title": "Origins",
            "description": "Where it started.",
            "researchQuestions": ["When did it start?", "Who started it?"],
            "relevance": 8,
        },
        {
            "title": "Impact",
            "description": "Why it matters.",
            "researchQuestions": ["What changed?"],
            "relevance": 6,
        },
    ],
    "targetAudience": "Curious listeners",
    "keyQuestions": ["Why now?"],
    "suggestedApproach": "Story first.",
}

OUTLINE = {
    "title": "The Story of Tea",
    "introduction": {
        "id": "intro",
        "title": "Welcome",
        "keyPoints": ["Set the scene"],
        "talkingPoints": [],
        "estimatedDuration": 1,
        "estimatedTokens": 750,
    },
    "mainSegments": [
        {
            "id": "seg-1",
            "title": "Leaves and Legends",
            "sections": [
                {
                    "id": "s-1",
                    "title": "First Cups",
                    "keyPoints": ["Early history"],
                    "estimatedDuration": 2,
                    "estimatedTokens": 1500,
                },
                {
                    "id": "s-2",
                    "title": "Trade Routes",
                    "keyPoints": ["Caravans"],
                    "estimatedDuration": 2,
                    "estimatedTokens": 1500,
                },
            ],
            "estimatedDuration": 4,
        }
    ],
    "conclusion": {
        "id": "outro",
        "title": "Last Sip",
        "keyPoints": ["Wrap up"],
        "estimatedDuration": 1,
        "estimatedTokens": 750,
    },
    "estimatedDuration": 6,
}


class FakeCompletion:
    """Completion fake answering by prompt kind, with optional failure injection."""

    provider_id = "fake"

    def __init__(self, *, fail_on: str | None = None, block_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.block_on = block_on
        self.gate = threading.Event()
        self.prompts: list[str] = []
        self.system_prompts: list[str] = []
        self.generated = 0
        self._lock = threading.Lock()

    def complete(
        self,
        prompt: str,
        system_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        _ = options
        with self._lock:
            self.prompts.append(prompt)
            self.system_prompts.append(system_prompt)
        if self.block_on is not None and self.block_on in prompt:
            self.gate.wait(timeout=30)
        if self.fail_on is not None and self.fail_on in prompt:
            raise ProviderError("Fake completion failed.", failure_kind="http_error")
        if "create a research plan" in prompt:
            return "Here you go:\n```json\n" + json.dumps(TOPIC_ANALYSIS) + "\n```"
        if "Create a detailed structure" in prompt:
            return json.dumps(OUTLINE)
        if "Write a narrative guide" in prompt:
            return "Arc: curiosity to insight."
        if "Summarize the following" in prompt:
            return "A short summary."
        with self._lock:
            self.generated += 1
            number = self.generated
        return f"Generated paragraph {number} about the topic. It keeps going for a while."


class FakeSpeech:
    """Speech fake returning deterministic bytes per call and recording inputs."""

    provider_id = "fake"
    max_input_chars = 4000

    def __init__(self, *, fail_at_call: int | None = None, block_at_call: int | None = None) -> None:
        self.fail_at_call = fail_at_call
        self.block_at_call = block_at_call
        self.gate = threading.Event()
        self.inputs: list[str] = []
        self.outputs: list[bytes] = []

    def synthesize_speech(self, text: str, voice: str) -> bytes:
        call_number = len(self.inputs) + 1
        self.inputs.append(text)
        if self.block_at_call == call_number:
            self.gate.wait(timeout=30)
        if self.fail_at_call == call_number:
            raise ProviderError("Fake speech failed.", failure_kind="http_error")
        audio = f"<{voice}:{call_number}:{len(text)}>".encode("ascii") * 50
        self.outputs.append(audio)
        return audio


class FakeSearch:
    """Search fake answering every query, except those listed as failing."""

    provider_id = "fake"

    def __init__(self, *, failing: tuple[str, ...] = ()) -> None:
        self.failing = failing
        self.queries: list[str] = []

    def search(self, query: str) -> SearchResult:
        self.queries.append(query)
        if query in self.failing:
            raise ProviderError("Fake search failed.", failure_kind="transport")
        return SearchResult(answer=f"Answer for {query}", citations=("https://example.com/a",))


class FakeImage:
    provider_id = "fake"

    def generate_image(self, prompt: str) -> str:
        _ = prompt
        return "https://images.example.com/art.png"


def make_providers(
    *,
    completion: FakeCompletion | None = None,
    speech: FakeSpeech | None = None,
    search: FakeSearch | None = None,
) -> ProviderSet:
    return ProviderSet(
        completion=completion or FakeCompletion(),
        speech=speech or FakeSpeech(),
        search=search or FakeSearch(),
        image=FakeImage(),
    )


@pytest.fixture
def build_providers() -> Callable[..., ProviderSet]:
    """Provide a builder of fake provider sets with optional failure injection."""

    def _build(
        *,
        completion_fail_on: str | None = None,
        completion_block_on: str | None = None,
        speech_fail_at: int | None = None,
        speech_block_at: int | None = None,
        search_failing: tuple[str, ...] = (),
    ) -> ProviderSet:
        return make_providers(
            completion=FakeCompletion(fail_on=completion_fail_on, block_on=completion_block_on),
            speech=FakeSpeech(fail_at_call=speech_fail_at, block_at_call=speech_block_at),
            search=FakeSearch(failing=search_failing),
        )

    return _build


@pytest.fixture
def fake_providers(build_providers: Callable[..., ProviderSet]) -> ProviderSet:
    """Provide a fresh provider set of deterministic fakes."""

    return build_providers()


@pytest.fixture
def voicecast_config(tmp_path: Path) -> VoicecastConfig:
    """Provide a config writing audio under the test's temporary directory."""

    return VoicecastConfig(content_dir=tmp_path / "content")


@pytest.fixture
def make_client(voicecast_config: VoicecastConfig) -> Iterator[Callable[[ProviderSet], TestClient]]:
    """Provide a factory of started API clients; every client is closed after the test."""

    started: list[TestClient] = []

    def _make(providers: ProviderSet) -> TestClient:
        client = TestClient(create_app(voicecast_config, providers))
        client.__enter__()
        started.append(client)
        return client

    yield _make
    for client in started:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[[ProviderSet], TestClient], fake_providers: ProviderSet) -> TestClient:
    """Provide a started API client backed by the default fakes."""

    return make_client(fake_providers)


@pytest.fixture
def wait_until() -> Callable[..., None]:
    """Provide a poller that waits for a condition set by background tasks."""

    def _wait(predicate: Callable[[], bool], timeout: float = 10.0) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return
            time.sleep(0.02)
        raise AssertionError("Condition not reached before timeout.")

    return _wait


@pytest.fixture
def topic_analysis_payload() -> dict[str, object]:
    """Provide the camelCase topic analysis the fake completion returns."""

    return json.loads(json.dumps(TOPIC_ANALYSIS))


@pytest.fixture
def outline_payload() -> dict[str, object]:
    """Provide the camelCase outline the fake completion returns."""

    return json.loads(json.dumps(OUTLINE))
