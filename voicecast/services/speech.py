"""Text-to-speech submission, background jobs, and the audio library.

Responsibilities:
- Validate submissions and route them to inline or background synthesis.
- Define the `summarize -> synthesize -> publish` phases of a speech job.
- Publish finished audio as library records and remove them on request.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import math

from loguru import logger

from ..audio.library import AudioLibrary
from ..audio.materializer import AudioMaterializer, MaterializedAudio
from ..audio.storage import AudioStore
from ..config import AVAILABLE_VOICES, VoicecastConfig
from ..errors import InputValidationError, TextTooLongError
from ..jobs.cancellation import CancellationToken
from ..jobs.registry import JobRegistry
from ..models.datatypes import AudioRecord, JobState
from ..pipeline.calls import call_provider
from ..pipeline.executor import Phase, PhaseContext, PipelineExecutor
from ..providers.base import CompletionOptions
from ..providers.factory import ProviderSet
from ..providers.prompts import PromptLibrary

SPEECH_CHARS_PER_SECOND = 25
JOB_KIND = "speech"


def estimate_text_duration_seconds(length: int) -> int:
    """Estimate spoken seconds for `length` characters at submission time."""

    return math.ceil(max(0, length) / SPEECH_CHARS_PER_SECOND)


@dataclass(frozen=True, slots=True)
class SpeechRequest:
    """One text-to-speech submission."""

    title: str
    text: str
    voice: str = "alloy"
    generate_artwork: bool = False


@dataclass(frozen=True, slots=True)
class Submission:
    """Outcome of a submission: an inline library record or a queued job."""

    record: AudioRecord | None = None
    job: JobState | None = None
    estimated_duration_seconds: int = 0

    @property
    def is_background(self) -> bool:
        return self.job is not None


class _SpeechJob:
    """Phase actions of one background speech job."""

    def __init__(self, service: TextToSpeechService, request: SpeechRequest) -> None:
        self.service = service
        self.request = request
        self.audio: MaterializedAudio | None = None

    def phases(self) -> list[Phase]:
        phases = [Phase("synthesize", self.synthesize), Phase("publish", self.publish)]
        if self.request.generate_artwork:
            phases.insert(0, Phase("summarize", self.summarize))
        return phases

    async def summarize(self, context: PhaseContext[JobState]) -> dict[str, object]:
        summary, artwork_url = await self.service.describe(self.request, context.token)
        return {"summary": summary, "artwork_url": artwork_url}

    async def synthesize(self, context: PhaseContext[JobState]) -> dict[str, object]:
        self.audio = await self.service.materializer.materialize(
            self.request.text,
            self.request.voice,
            context.token,
            on_progress=lambda done, total: context.report(done / total),
            on_stored=lambda path: context.commit(output_path=path),
        )
        return {"total_units": self.audio.chunk_count}

    async def publish(self, context: PhaseContext[JobState]) -> dict[str, object]:
        if self.audio is None:
            raise RuntimeError("publish phase ran before synthesis produced audio.")
        job = context.record
        record = self.service.publish(self.request, self.audio, job.summary, job.artwork_url)
        return {"output_url": record.audio_url, "audio_id": record.id}

    def release(self, job: JobState) -> None:
        """Remove audio a failed job stored but never published."""

        if job.output_path is not None and job.audio_id is None:
            self.service.store.remove(job.output_path)


class TextToSpeechService:
    """Accept text for synthesis and track long inputs as background jobs."""

    def __init__(
        self,
        *,
        config: VoicecastConfig,
        providers: ProviderSet,
        store: AudioStore,
        library: AudioLibrary,
        executor: PipelineExecutor,
        registry: JobRegistry[JobState] | None = None,
        prompts: PromptLibrary | None = None,
    ) -> None:
        self.config = config
        self.providers = providers
        self.store = store
        self.library = library
        self.executor = executor
        self.registry: JobRegistry[JobState] = registry or JobRegistry(
            ttl_seconds=config.job_ttl_seconds,
            max_records=config.max_jobs,
        )
        self.prompts = prompts or PromptLibrary()
        self.materializer = AudioMaterializer(
            providers.speech,
            store,
            chunk_chars=config.tts_chunk_chars,
            timeout_seconds=config.provider_timeout_seconds,
        )

    def validate(self, request: SpeechRequest) -> SpeechRequest:
        """Return a normalized request or raise `InputValidationError`."""

        title = request.title.strip()
        if not title:
            raise InputValidationError("Title is required")
        if not request.text.strip():
            raise InputValidationError("Text is required")
        if request.voice not in AVAILABLE_VOICES:
            raise InputValidationError("Please select a valid voice")
        if len(request.text) > self.config.max_text_chars:
            raise TextTooLongError(len(request.text), self.config.max_text_chars)
        return replace(request, title=title)

    async def submit(self, request: SpeechRequest) -> Submission:
        """Synthesize short texts inline and queue longer ones as jobs.

        Raises:
            InputValidationError: Including `TextTooLongError`; no job is created.
            ProviderError: From an inline provider call.
            AudioStorageError: If inline audio cannot be stored.
        """

        request = self.validate(request)
        length = len(request.text)
        if length <= self.config.sync_threshold_chars:
            logger.info("Synthesizing {} characters inline.", length)
            record = await self.synthesize_inline(request)
            return Submission(record=record, estimated_duration_seconds=record.duration_seconds)
        logger.info("Queuing {} characters for background synthesis.", length)
        job = self.start_job(request)
        return Submission(job=job, estimated_duration_seconds=estimate_text_duration_seconds(length))

    async def synthesize_inline(self, request: SpeechRequest) -> AudioRecord:
        summary: str | None = None
        artwork_url: str | None = None
        if request.generate_artwork:
            summary, artwork_url = await self.describe(request)
        audio = await self.materializer.materialize(request.text, request.voice)
        return self.publish(request, audio, summary, artwork_url)

    def start_job(self, request: SpeechRequest) -> JobState:
        """Register a job for `request` and spawn its phases."""

        planned_chunks = len(self.materializer.plan_chunks(request.text))
        job_id = self.registry.create(
            lambda record_id: JobState(
                id=record_id,
                title=request.title,
                voice=request.voice,
                text_length=len(request.text),
                total_units=planned_chunks,
            )
        )
        job = _SpeechJob(self, request)
        self.executor.spawn(
            self.registry,
            job_id,
            job.phases(),
            CancellationToken(),
            kind=JOB_KIND,
            on_failure=job.release,
        )
        return self.registry.get(job_id)

    async def describe(
        self,
        request: SpeechRequest,
        token: CancellationToken | None = None,
    ) -> tuple[str, str | None]:
        """Return a short summary of the text and an artwork URL derived from it."""

        summary = await call_provider(
            self.providers.completion.complete,
            self.prompts.summary_prompt(request.title, request.text),
            self.prompts.summary_system_prompt(),
            CompletionOptions(max_tokens=150, temperature=0.7),
            token=token,
            timeout_seconds=self.config.provider_timeout_seconds,
            operation="summary",
        )
        summary = summary.strip()
        artwork_url = await call_provider(
            self.providers.image.generate_image,
            self.prompts.artwork_prompt(request.title, summary),
            token=token,
            timeout_seconds=self.config.provider_timeout_seconds,
            operation="artwork generation",
        )
        return summary, artwork_url or None

    def publish(
        self,
        request: SpeechRequest,
        audio: MaterializedAudio,
        summary: str | None,
        artwork_url: str | None,
    ) -> AudioRecord:
        record = self.library.add(
            AudioRecord(
                id=0,
                title=request.title,
                text=request.text,
                voice=request.voice,
                audio_url=audio.url,
                duration_seconds=audio.duration_seconds,
                summary=summary,
                artwork_url=artwork_url,
            )
        )
        logger.info("Published audio record {} ({} bytes).", record.id, audio.size_bytes)
        return record

    def status(self, job_id: int) -> JobState:
        return self.registry.get(job_id)

    def cancel(self, job_id: int) -> JobState:
        return self.executor.cancel(self.registry, job_id, kind=JOB_KIND)

    def delete_audio(self, record_id: int) -> AudioRecord:
        """Remove a library record together with its audio file."""

        record = self.library.delete(record_id)
        filename = self.store.filename_from_url(record.audio_url)
        path = self.store.resolve(filename) if filename else None
        if path is not None:
            self.store.remove(path)
        return record
