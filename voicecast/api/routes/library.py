"""Audio library listing and deletion routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ...audio.library import AudioLibrary
from ...services.speech import TextToSpeechService
from ..deps import get_library, get_speech_service
from ..schemas import AudioRecordResponse

router = APIRouter(prefix="/library", tags=["library"])


@router.get("", response_model=list[AudioRecordResponse])
async def list_library(library: AudioLibrary = Depends(get_library)) -> list[AudioRecordResponse]:
    """Return library records, newest first."""

    return [AudioRecordResponse.model_validate(record) for record in library.list()]


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    record_id: int,
    service: TextToSpeechService = Depends(get_speech_service),
) -> Response:
    service.delete_audio(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
