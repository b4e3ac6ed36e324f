"""Filesystem storage for synthesized audio files.

Responsibilities:
- Allocate collision-free audio filenames inside the content directory.
- Append audio bytes with async file I/O so writes never block the event loop.
- Resolve client-supplied filenames safely, refusing path traversal.
"""

from __future__ import annotations

import math
from pathlib import Path
import re
import secrets

import aiofiles
import aiofiles.os

from ..errors import AudioStorageError

AUDIO_BYTES_PER_SECOND = 24000
_SAFE_FILENAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}\.(?:mp3|wav|opus|aac|flac)$")

MEDIA_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".opus": "audio/ogg",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
}


def estimate_duration_seconds(size_bytes: int) -> int:
    """Estimate playback seconds from file size (about 24 kB per second)."""

    return math.ceil(max(0, size_bytes) / AUDIO_BYTES_PER_SECOND)


class AudioStore:
    """Content-directory-backed audio file store."""

    def __init__(self, root: Path, url_prefix: str = "/audio") -> None:
        """Initialize the store with a root directory and public URL prefix."""

        self.root = root
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def new_filename(self, extension: str = ".mp3") -> str:
        """Return a random `<16 hex chars><extension>` filename."""

        return f"{secrets.token_hex(8)}{extension}"

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def filename_from_url(self, url: str) -> str | None:
        """Return the filename behind one of this store's URLs."""

        prefix = f"{self.url_prefix}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix) :]

    def resolve(self, filename: str) -> Path | None:
        """Return the path of an existing audio file, or `None` for unknown or unsafe names."""

        if not _SAFE_FILENAME_RE.fullmatch(filename):
            return None
        root = self.root.resolve()
        path = (root / filename).resolve()
        if path.parent != root or not path.is_file():
            return None
        return path

    async def append(self, path: Path, data: bytes) -> None:
        """Append bytes to `path`, creating it on first write."""

        try:
            async with aiofiles.open(path, "ab") as handle:
                await handle.write(data)
        except OSError as exc:
            raise AudioStorageError(f"Failed to write audio file `{path.name}`: {exc}") from exc

    async def size_of(self, path: Path) -> int:
        """Return the file size in bytes, or `0` when the file does not exist."""

        try:
            stat_result = await aiofiles.os.stat(path)
        except FileNotFoundError:
            return 0
        return stat_result.st_size

    def remove(self, path: Path) -> bool:
        """Delete a stored file and report whether it existed."""

        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True
