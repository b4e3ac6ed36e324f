"""Streaming delivery of stored audio with byte-range support."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from ...audio.storage import MEDIA_TYPES, AudioStore, estimate_duration_seconds
from ...parsing import parse_boolean
from ..deps import get_audio_store
from ..ranges import MalformedRangeError, RangeNotSatisfiableError, parse_range_header

router = APIRouter(tags=["audio"])

STREAM_BLOCK_SIZE = 64 * 1024


async def iter_file_range(path: Path, start: int, length: int) -> AsyncIterator[bytes]:
    """Yield `length` bytes of `path` from `start` in bounded blocks.

    Closing the generator early, as on client disconnect, releases the handle.
    """

    async with aiofiles.open(path, "rb") as handle:
        await handle.seek(start)
        remaining = length
        while remaining > 0:
            block = await handle.read(min(STREAM_BLOCK_SIZE, remaining))
            if not block:
                break
            remaining -= len(block)
            yield block


def _content_disposition(filename: str, download: bool) -> str:
    disposition = "attachment" if download else "inline"
    return f'{disposition}; filename="{filename}"'


@router.get("/{filename}")
async def stream_audio(
    filename: str,
    request: Request,
    download: Optional[str] = Query(None),
    store: AudioStore = Depends(get_audio_store),
) -> StreamingResponse:
    """Stream an audio file, honoring a single `Range: bytes=...` header."""

    path = store.resolve(filename)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audio file not found")
    try:
        as_attachment = parse_boolean(download, "download") if download is not None else False
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    total = path.stat().st_size
    media_type = MEDIA_TYPES.get(path.suffix, "application/octet-stream")
    headers = {
        "Accept-Ranges": "bytes",
        "X-Audio-Duration": str(estimate_duration_seconds(total)),
        "Content-Disposition": _content_disposition(path.name, as_attachment),
    }

    range_header = request.headers.get("range")
    if range_header is None:
        headers["Content-Length"] = str(total)
        return StreamingResponse(iter_file_range(path, 0, total), media_type=media_type, headers=headers)

    try:
        byte_range = parse_range_header(range_header, total)
    except RangeNotSatisfiableError as exc:
        raise HTTPException(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            detail=str(exc),
            headers={"Content-Range": f"bytes */{total}"},
        ) from exc
    except MalformedRangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    headers["Content-Range"] = byte_range.content_range
    headers["Content-Length"] = str(byte_range.length)
    return StreamingResponse(
        iter_file_range(path, byte_range.start, byte_range.length),
        status_code=status.HTTP_206_PARTIAL_CONTENT,
        media_type=media_type,
        headers=headers,
    )
