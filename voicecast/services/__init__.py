"""Application services behind the HTTP API and the CLI."""

from .podcast import PodcastProjectManager
from .speech import SpeechRequest, Submission, TextToSpeechService, estimate_text_duration_seconds

__all__ = [
    "PodcastProjectManager",
    "SpeechRequest",
    "Submission",
    "TextToSpeechService",
    "estimate_text_duration_seconds",
]
