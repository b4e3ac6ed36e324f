"""Chunked speech synthesis into a single audio file.

Responsibilities:
- Chunk text to the speech provider's input limit; formatted scripts are cleaned first.
- Synthesize chunks strictly in order and append their bytes to one file.
- Report per-chunk progress and verify the finished file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from loguru import logger

from ..errors import AudioStorageError, InputValidationError
from ..jobs.cancellation import CancellationToken
from ..models.datatypes import Chunk
from ..pipeline.calls import call_provider
from ..providers.base import SpeechProvider
from ..telemetry.cost_tracker import CostTracker
from ..text.chunking import BoundaryChunker
from ..text.cleaners import SpeechTextCleaner
from .storage import AudioStore, estimate_duration_seconds


@dataclass(frozen=True, slots=True)
class MaterializedAudio:
    """A verified audio file produced from one text."""

    path: Path
    url: str
    size_bytes: int
    chunk_count: int
    duration_seconds: int


class AudioMaterializer:
    """Turn text into one audio file through sequential chunk synthesis."""

    def __init__(
        self,
        speech: SpeechProvider,
        store: AudioStore,
        *,
        chunk_chars: int = 4000,
        timeout_seconds: float = 120.0,
        chunker: BoundaryChunker | None = None,
        cleaner: SpeechTextCleaner | None = None,
    ) -> None:
        self.speech = speech
        self.store = store
        self.chunk_chars = min(chunk_chars, getattr(speech, "max_input_chars", chunk_chars))
        self.timeout_seconds = timeout_seconds
        self.chunker = chunker or BoundaryChunker()
        self.cleaner = cleaner or SpeechTextCleaner()

    def plan_chunks(self, text: str, *, clean_markup: bool = False) -> list[Chunk]:
        """Return the non-blank synthesis chunks for `text`.

        Submitted text is chunked as given. `clean_markup` strips the headings and
        emphasis of a formatted script first.
        """

        speakable = self.cleaner.clean(text) if clean_markup else text
        return [chunk for chunk in self.chunker.split(speakable, self.chunk_chars) if chunk.speech_text]

    async def materialize(
        self,
        text: str,
        voice: str,
        token: CancellationToken | None = None,
        on_progress: Callable[[int, int], None] | None = None,
        cost_tracker: CostTracker | None = None,
        *,
        clean_markup: bool = False,
        on_stored: Callable[[Path], None] | None = None,
    ) -> MaterializedAudio:
        """Synthesize `text` with `voice` and return the verified file.

        Raises:
            InputValidationError: If the text has nothing speakable.
            AudioStorageError: If the file cannot be written or ends up empty.
            ProviderError: If a synthesis call fails.
            JobCanceledError: If cancellation is requested between chunks.

        `on_stored` receives the verified path before the file is handed over, so
        callers can record it; the file is removed on any failure up to and
        including that callback.
        """

        chunks = self.plan_chunks(text, clean_markup=clean_markup)
        if not chunks:
            raise InputValidationError("Text has no speakable content.")

        self.store.ensure_root()
        filename = self.store.new_filename()
        path = self.store.root / filename
        total = len(chunks)
        logger.info("Synthesizing {} chunk(s) into {}.", total, filename)
        finished = False
        try:
            for done, chunk in enumerate(chunks, start=1):
                if token is not None:
                    token.raise_if_cancelled()
                audio = await call_provider(
                    self.speech.synthesize_speech,
                    chunk.speech_text,
                    voice,
                    token=token,
                    timeout_seconds=self.timeout_seconds,
                    operation="speech synthesis",
                )
                await self.store.append(path, audio)
                if cost_tracker is not None:
                    cost_tracker.add_tts_usage(len(chunk.speech_text))
                if on_progress is not None:
                    on_progress(done, total)
            size = await self.store.size_of(path)
            if size <= 0:
                raise AudioStorageError(f"Audio file `{filename}` is missing or empty.")
            if token is not None:
                token.raise_if_cancelled()
            if on_stored is not None:
                on_stored(path)
            finished = True
        finally:
            if not finished and self.store.remove(path):
                logger.debug("Removed partial audio file {}.", filename)
        return MaterializedAudio(
            path=path,
            url=self.store.url_for(filename),
            size_bytes=size,
            chunk_count=total,
            duration_seconds=estimate_duration_seconds(size),
        )
