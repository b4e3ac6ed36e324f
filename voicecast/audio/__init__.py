"""Audio storage, materialization, and library records."""

from .library import AudioLibrary
from .materializer import AudioMaterializer, MaterializedAudio
from .storage import AudioStore, estimate_duration_seconds

__all__ = [
    "AudioLibrary",
    "AudioMaterializer",
    "AudioStore",
    "MaterializedAudio",
    "estimate_duration_seconds",
]
