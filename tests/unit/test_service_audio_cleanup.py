"""Unit tests for removal of stored audio when a run ends before handing it over."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from voicecast.audio.library import AudioLibrary
from voicecast.audio.storage import AudioStore
from voicecast.config import VoicecastConfig
from voicecast.models.datatypes import JobState, JobStatus, ProjectState, ProjectStatus
from voicecast.pipeline.executor import PhaseContext, PipelineExecutor
from voicecast.providers.factory import ProviderSet
from voicecast.services import podcast as podcast_module
from voicecast.services import speech as speech_module
from voicecast.services.podcast import PodcastProjectManager
from voicecast.services.speech import SpeechRequest, TextToSpeechService


def test_speech_job_canceled_between_synthesis_and_publish_removes_audio(
    monkeypatch: pytest.MonkeyPatch,
    voicecast_config: VoicecastConfig,
    fake_providers: ProviderSet,
) -> None:
    """Audio stored for a job that never reaches publishing must not stay on disk."""

    synthesize = speech_module._SpeechJob.synthesize

    async def synthesize_then_cancel(self: Any, context: PhaseContext[JobState]) -> dict[str, object]:
        updates = await synthesize(self, context)
        context.token.cancel()
        return updates

    monkeypatch.setattr(speech_module._SpeechJob, "synthesize", synthesize_then_cancel)
    store = AudioStore(voicecast_config.content_dir)
    library = AudioLibrary()

    async def scenario() -> JobState:
        executor = PipelineExecutor()
        service = TextToSpeechService(
            config=voicecast_config,
            providers=fake_providers,
            store=store,
            library=library,
            executor=executor,
        )
        job = service.start_job(SpeechRequest(title="Trail", text="Carry water on every hike. " * 8))
        await executor.drain()
        return service.status(job.id)

    job = asyncio.run(scenario())

    assert job.status is JobStatus.ERROR
    assert job.error == "Job was canceled."
    assert job.output_path is not None
    assert not job.output_path.exists()
    assert job.audio_id is None
    assert list(store.root.iterdir()) == []
    assert library.list() == []


def test_podcast_failing_after_conversion_removes_stored_audio(
    monkeypatch: pytest.MonkeyPatch,
    voicecast_config: VoicecastConfig,
    fake_providers: ProviderSet,
) -> None:
    convert = podcast_module._ProjectRun.convert

    async def convert_then_cancel(self: Any, context: PhaseContext[ProjectState]) -> dict[str, Any]:
        updates = await convert(self, context)
        context.token.cancel()
        return updates

    monkeypatch.setattr(podcast_module._ProjectRun, "convert", convert_then_cancel)
    store = AudioStore(voicecast_config.content_dir)

    async def scenario() -> ProjectState:
        executor = PipelineExecutor()
        manager = PodcastProjectManager(
            config=voicecast_config,
            providers=fake_providers,
            store=store,
            executor=executor,
        )
        project_id = manager.create_project("Tea", 10)
        await executor.drain()
        return manager.get(project_id)

    project = asyncio.run(scenario())

    assert project.status is ProjectStatus.FAILED
    assert project.failed_phase == "converting"
    assert project.audio_url is None
    assert project.output_path is not None
    assert list(store.root.iterdir()) == []
    assert fake_providers.speech.inputs
    assert all("## [" not in text for text in fake_providers.speech.inputs)
