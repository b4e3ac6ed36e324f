"""FastAPI dependencies resolving services from application state."""

from __future__ import annotations

from fastapi import Request

from ..audio.library import AudioLibrary
from ..audio.storage import AudioStore
from ..services.assistant import AssistantService
from ..services.podcast import PodcastProjectManager
from ..services.speech import TextToSpeechService


def get_speech_service(request: Request) -> TextToSpeechService:
    return request.app.state.speech


def get_podcast_manager(request: Request) -> PodcastProjectManager:
    return request.app.state.podcasts


def get_assistant(request: Request) -> AssistantService:
    return request.app.state.assistant


def get_audio_store(request: Request) -> AudioStore:
    return request.app.state.store


def get_library(request: Request) -> AudioLibrary:
    return request.app.state.library
