"""Request and response schemas of the HTTP API.

All fields use camelCase aliases on the wire and snake_case in Python.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextToSpeechRequest(CamelModel):
    title: str = ""
    text: str = ""
    voice: str = "alloy"
    generate_artwork: bool = False


class AudioRecordResponse(CamelModel):
    """A published library entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    title: str
    text: str
    voice: str
    audio_url: str
    duration_seconds: int
    summary: Optional[str] = None
    artwork_url: Optional[str] = None
    created_at: datetime


class JobAcceptedResponse(CamelModel):
    """Returned when a long text was queued for background synthesis."""

    id: int
    title: str
    status: str
    progress: int
    estimated_duration: int
    message: str


class TextTooLongResponse(CamelModel):
    message: str
    exceeded_limit: bool = True
    current_length: int
    max_length: int


class JobStatusResponse(CamelModel):
    """Background job state; `audioUrl` is set only once the job is complete."""

    id: int
    title: str
    status: str
    progress: int
    total_units: int
    error: Optional[str] = None
    audio_url: Optional[str] = None
    audio_id: Optional[int] = None
    summary: Optional[str] = None
    artwork_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ResearchRequest(CamelModel):
    topic: str = ""


class PlanRequest(CamelModel):
    topic: str = ""
    target_duration_minutes: int = 15
    research_data: Optional[dict[str, Any]] = None


class ProjectRequest(CamelModel):
    topic: str = ""
    target_duration_minutes: int = 15
    voice: Optional[str] = None


class ChatMessageModel(CamelModel):
    role: str
    content: str


class ChatRequest(CamelModel):
    messages: list[ChatMessageModel] = Field(default_factory=list)
    context: str = ""
    use_context: bool = True


class SearchRequest(CamelModel):
    query: str = ""
