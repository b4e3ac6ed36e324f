"""Integration tests for text-to-speech submission, jobs, and the library."""

from __future__ import annotations

import math
from typing import Any, Callable

from fastapi.testclient import TestClient

from voicecast.providers.factory import ProviderSet

_LONG_TEXT = ("Sentence number forty-two keeps the listener engaged. " * 250)[:12000]


def _job_status(client: TestClient, job_id: int) -> dict[str, Any]:
    response = client.get(f"/text-to-speech/status/{job_id}")
    assert response.status_code == 200
    return response.json()


def test_short_text_is_synthesized_inline(client: TestClient, fake_providers: ProviderSet) -> None:
    """Texts at or below the threshold return a published library record directly."""

    response = client.post(
        "/text-to-speech",
        json={"title": "  Hello  ", "text": "Short text to read aloud.", "voice": "nova"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["title"] == "Hello"
    assert body["voice"] == "nova"
    assert body["audioUrl"].startswith("/audio/")
    assert body["durationSeconds"] == 1
    assert body["summary"] is None
    assert fake_providers.speech.inputs == ["Short text to read aloud."]

    audio = client.get(body["audioUrl"])
    assert audio.status_code == 200
    assert audio.content == fake_providers.speech.outputs[0]

    library = client.get("/library").json()
    assert [record["id"] for record in library] == [body["id"]]


def test_inline_synthesis_keeps_markup_like_text(client: TestClient, fake_providers: ProviderSet) -> None:
    """Lines starting with `#` and asterisk arithmetic are read aloud as submitted."""

    text = "#1 rule of the trail: carry water.\nAlways tell someone your route.\nPack 2*3*4 snacks."

    response = client.post("/text-to-speech", json={"title": "Trail", "text": text})

    assert response.status_code == 201
    assert fake_providers.speech.inputs == [text]
    assert response.json()["text"] == text


def test_long_text_runs_as_background_job(
    client: TestClient,
    fake_providers: ProviderSet,
    wait_until: Callable[..., None],
) -> None:
    """A 12,000-character text is queued, chunked to the provider limit, and published."""

    response = client.post("/text-to-speech", json={"title": "Long", "text": _LONG_TEXT})

    assert response.status_code == 202
    accepted = response.json()
    assert accepted["status"] == "processing"
    assert accepted["estimatedDuration"] == math.ceil(12000 / 25)
    assert accepted["message"] == "Processing 12000 characters in the background"

    job_id = accepted["id"]
    wait_until(lambda: _job_status(client, job_id)["status"] != "processing")
    status = _job_status(client, job_id)

    speech = fake_providers.speech
    assert status["status"] == "complete"
    assert status["progress"] == 100
    assert status["totalUnits"] == len(speech.inputs) >= 3
    assert all(len(text) <= 4000 for text in speech.inputs)
    assert status["audioUrl"].startswith("/audio/")

    audio = client.get(status["audioUrl"])
    assert audio.content == b"".join(speech.outputs)
    library = client.get("/library").json()
    assert library[0]["id"] == status["audioId"]


def test_text_over_absolute_limit_is_rejected_without_a_job(client: TestClient) -> None:
    response = client.post("/text-to-speech", json={"title": "Huge", "text": "a" * 150000})

    assert response.status_code == 400
    assert response.json() == {
        "message": "Text is too long (150000 characters). Maximum allowed is 100000 characters.",
        "exceededLimit": True,
        "currentLength": 150000,
        "maxLength": 100000,
    }
    assert len(client.app.state.speech.registry) == 0


def test_submission_validation_messages(client: TestClient) -> None:
    cases = [
        ({"title": " ", "text": "Some text."}, "Title is required"),
        ({"title": "T", "text": "   "}, "Text is required"),
        ({"title": "T", "text": "Some text.", "voice": "robot"}, "Please select a valid voice"),
    ]

    for payload, message in cases:
        response = client.post("/text-to-speech", json=payload)
        assert response.status_code == 400
        assert response.json() == {"message": message}


def test_malformed_body_is_a_bad_request(client: TestClient) -> None:
    response = client.post("/text-to-speech", json={"title": "T", "text": "x", "generateArtwork": "sometimes"})

    assert response.status_code == 400
    assert response.json()["message"].startswith("generateArtwork")


def test_unknown_job_is_not_found(client: TestClient) -> None:
    response = client.get("/text-to-speech/status/999")

    assert response.status_code == 404
    assert response.json() == {"message": "Job not found: 999"}


def test_failed_background_job_reports_error_and_leaves_no_file(
    make_client: Callable[[ProviderSet], TestClient],
    build_providers: Callable[..., ProviderSet],
    wait_until: Callable[..., None],
) -> None:
    client = make_client(build_providers(speech_fail_at=2))

    job_id = client.post("/text-to-speech", json={"title": "Long", "text": _LONG_TEXT}).json()["id"]
    wait_until(lambda: _job_status(client, job_id)["status"] != "processing")

    status = _job_status(client, job_id)
    assert status["status"] == "error"
    assert status["error"] == "Fake speech failed."
    assert status["audioUrl"] is None
    assert list(client.app.state.store.root.iterdir()) == []
    assert client.get("/library").json() == []


def test_inline_provider_failure_is_bad_gateway(
    make_client: Callable[[ProviderSet], TestClient],
    build_providers: Callable[..., ProviderSet],
) -> None:
    client = make_client(build_providers(speech_fail_at=1))

    response = client.post("/text-to-speech", json={"title": "T", "text": "Short text."})

    assert response.status_code == 502
    assert response.json() == {"message": "Fake speech failed."}


def test_artwork_request_adds_summary_and_artwork(client: TestClient) -> None:
    response = client.post(
        "/text-to-speech",
        json={"title": "Art", "text": "A story about tea.", "generateArtwork": True},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["summary"] == "A short summary."
    assert body["artworkUrl"] == "https://images.example.com/art.png"


def test_running_job_can_be_canceled(
    make_client: Callable[[ProviderSet], TestClient],
    build_providers: Callable[..., ProviderSet],
    wait_until: Callable[..., None],
) -> None:
    """Cancellation fails the job at once; the blocked chunk never publishes audio."""

    providers = build_providers(speech_block_at=2)
    client = make_client(providers)
    try:
        job_id = client.post("/text-to-speech", json={"title": "Long", "text": _LONG_TEXT}).json()["id"]
        wait_until(lambda: len(providers.speech.inputs) >= 2)

        response = client.post(f"/text-to-speech/status/{job_id}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["error"] == "Job was canceled."
    finally:
        providers.speech.gate.set()

    wait_until(lambda: client.app.state.executor.active_count == 0)
    assert _job_status(client, job_id)["status"] == "error"
    assert client.get("/library").json() == []


def test_library_delete_removes_record_and_file(client: TestClient) -> None:
    record = client.post("/text-to-speech", json={"title": "T", "text": "Short text."}).json()
    filename = record["audioUrl"].rsplit("/", 1)[-1]

    response = client.delete(f"/library/{record['id']}")

    assert response.status_code == 204
    assert client.get("/library").json() == []
    assert client.get(f"/audio/{filename}").status_code == 404
    assert client.delete(f"/library/{record['id']}").status_code == 404


def test_health_reports_service(client: TestClient) -> None:
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["service"] == "voicecast"
    assert body["activeRuns"] == 0
