"""Core datatypes shared across Voicecast modules.

Responsibilities:
- Represent immutable records exchanged between pipeline phases.
- Provide the job and project state records owned by the job registry.
- Serialize records into camelCase JSON payloads for the HTTP layer.

Key types:
- `Chunk`, `JobState`, `ProjectState`, `Outline`, `OutlineSection`,
  `GenerationUnitPlan`, `ContentUnit`, `ResearchData`, and `AudioRecord`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from ..parsing import camel_case


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Lifecycle of a text-to-speech background job."""

    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


class ProjectStatus(str, Enum):
    """Lifecycle of a podcast project, declared in fixed phase order."""

    INITIALIZING = "initializing"
    RESEARCHING = "researching"
    PLANNING = "planning"
    GENERATING = "generating"
    COMPILING = "compiling"
    CONVERTING = "converting"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        """Return the position of this status in the forward phase order."""

        return list(ProjectStatus).index(self)


@dataclass(frozen=True, slots=True)
class Chunk:
    """A bounded slice of text handed to one speech-synthesis call.

    Attributes:
        index: 0-based chunk position.
        text: Untrimmed chunk text; concatenating all chunks reproduces the input.
        char_start: Inclusive character offset in the source text.
        char_end: Exclusive character offset in the source text.
        boundary_strategy: `text_end`, `sentence`, `word`, or `forced`.
    """

    index: int
    text: str
    char_start: int
    char_end: int
    boundary_strategy: str = "sentence"

    @property
    def speech_text(self) -> str:
        """Return the trimmed text sent to a provider."""

        return self.text.strip()


@dataclass(frozen=True, slots=True)
class TopicArea:
    """One area of a topic analysis with its research questions."""

    title: str
    description: str = ""
    research_questions: tuple[str, ...] = ()
    relevance: int = 5


@dataclass(frozen=True, slots=True)
class TopicAnalysis:
    """Structured breakdown of a podcast topic produced by the research phase."""

    main_areas: tuple[TopicArea, ...] = ()
    target_audience: str = ""
    key_questions: tuple[str, ...] = ()
    suggested_approach: str = ""

    def research_queries(self) -> list[str]:
        """Flatten research questions across all areas in declaration order."""

        return [
            question
            for area in self.main_areas
            for question in area.research_questions
            if question.strip()
        ]


@dataclass(frozen=True, slots=True)
class ResearchResult:
    """Outcome of one web-search query."""

    query: str
    summary: str
    citations: tuple[str, ...] = ()
    failed: bool = False


@dataclass(frozen=True, slots=True)
class ResearchData:
    """Research output accumulated by the research and planning phases."""

    topic_analysis: TopicAnalysis
    main_research: tuple[ResearchResult, ...] = ()
    segment_research: Mapping[str, tuple[ResearchResult, ...]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class OutlineSection:
    """A titled outline section carrying the points it must cover.

    Attributes:
        id: Stable section identifier.
        title: Section title.
        key_points: Points the section must make.
        talking_points: Optional phrasing hints.
        estimated_duration_minutes: Expected spoken duration.
        estimated_tokens: Expected generation size; `0` means derive from duration.
    """

    id: str
    title: str
    key_points: tuple[str, ...] = ()
    talking_points: tuple[str, ...] = ()
    estimated_duration_minutes: float = 0.0
    estimated_tokens: int = 0


@dataclass(frozen=True, slots=True)
class OutlineSegment:
    """A main segment of the outline grouping consecutive sections."""

    id: str
    title: str
    sections: tuple[OutlineSection, ...] = ()
    estimated_duration_minutes: float = 0.0


@dataclass(frozen=True, slots=True)
class Outline:
    """Ordered podcast structure: introduction, main segments, conclusion."""

    title: str
    introduction: OutlineSection
    segments: tuple[OutlineSegment, ...]
    conclusion: OutlineSection
    estimated_duration_minutes: float = 0.0

    def ordered_sections(self) -> list[OutlineSection]:
        """Return all sections in narrative order."""

        return [
            self.introduction,
            *(section for segment in self.segments for section in segment.sections),
            self.conclusion,
        ]


@dataclass(frozen=True, slots=True)
class GenerationUnitPlan:
    """Consecutive outline sections packed into one completion call."""

    position: int
    sections: tuple[OutlineSection, ...]
    total_tokens: int


@dataclass(frozen=True, slots=True)
class ContentUnit:
    """Generated text for one generation unit plus its continuity windows.

    Attributes:
        id: Stable unit identifier (`unit-<position>`).
        position: 0-based order in the generation chain.
        section_ids: Outline sections covered by this unit.
        text: Generated core text.
        trailing_context_used: Seed taken from the previous unit's tail.
        leading_context_produced: Tail window handed to the next unit.
        stage: Narrative stage hint used for generation.
    """

    id: str
    position: int
    section_ids: tuple[str, ...]
    text: str
    trailing_context_used: str = ""
    leading_context_produced: str = ""
    stage: str = ""


@dataclass(frozen=True, slots=True)
class AudioRecord:
    """A published audio library entry."""

    id: int
    title: str
    text: str
    voice: str
    audio_url: str
    duration_seconds: int
    summary: str | None = None
    artwork_url: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class JobState:
    """Snapshot of a text-to-speech background job.

    Records are replaced on every update; readers never observe a partial write.
    """

    id: int
    title: str
    voice: str
    text_length: int
    status: JobStatus = JobStatus.PROCESSING
    progress: int = 0
    total_units: int = 0
    output_path: Path | None = None
    output_url: str | None = None
    error: str | None = None
    audio_id: int | None = None
    summary: str | None = None
    artwork_url: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETE, JobStatus.ERROR)

    def enter_phase(self, status: str | None) -> JobState:
        """Jobs keep `processing` through every phase."""

        _ = status
        return self

    def mark_complete(self) -> JobState:
        return replace(self, status=JobStatus.COMPLETE, progress=100, updated_at=utc_now())

    def mark_failed(self, message: str) -> JobState:
        return replace(self, status=JobStatus.ERROR, error=message, updated_at=utc_now())


@dataclass(frozen=True, slots=True)
class ProjectState:
    """Snapshot of a multi-phase podcast generation project."""

    id: int
    topic: str
    target_duration_minutes: int
    voice: str
    status: ProjectStatus = ProjectStatus.INITIALIZING
    progress: int = 0
    total_units: int = 0
    output_path: Path | None = None
    error: str | None = None
    research_data: ResearchData | None = None
    outline: Outline | None = None
    narrative_guide: str | None = None
    content_units: tuple[ContentUnit, ...] = ()
    final_script: str | None = None
    audio_url: str | None = None
    estimated_tokens_used: int = 0
    estimated_cost_usd: float = 0.0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    failed_phase: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProjectStatus.COMPLETE, ProjectStatus.FAILED)

    @property
    def output_url(self) -> str | None:
        return self.audio_url

    def enter_phase(self, status: str | None) -> ProjectState:
        """Advance to a phase status, refusing to move backwards."""

        if status is None:
            return self
        target = ProjectStatus(status)
        if target.rank < self.status.rank:
            raise ValueError(
                f"Project status cannot move backwards from `{self.status.value}` "
                f"to `{target.value}`."
            )
        return replace(self, status=target, updated_at=utc_now())

    def mark_complete(self) -> ProjectState:
        now = utc_now()
        return replace(
            self,
            status=ProjectStatus.COMPLETE,
            progress=100,
            updated_at=now,
            completed_at=now,
        )

    def mark_failed(self, message: str) -> ProjectState:
        """Fail the project, remembering the phase status it failed in."""

        return replace(
            self,
            status=ProjectStatus.FAILED,
            error=message,
            failed_phase=self.status.value,
            updated_at=utc_now(),
        )


_PRIVATE_PAYLOAD_FIELDS = frozenset({"output_path"})


def to_payload(value: Any) -> Any:
    """Convert records into JSON-ready structures with camelCase keys.

    Filesystem paths of job outputs are omitted; clients reach audio through URLs.
    """

    if is_dataclass(value) and not isinstance(value, type):
        return {
            camel_case(item.name): to_payload(getattr(value, item.name))
            for item in fields(value)
            if item.name not in _PRIVATE_PAYLOAD_FIELDS
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value
