"""Text-to-speech submission and job status routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ...models.datatypes import JobState, JobStatus
from ...services.speech import SpeechRequest, TextToSpeechService
from ..deps import get_speech_service
from ..schemas import (
    AudioRecordResponse,
    JobAcceptedResponse,
    JobStatusResponse,
    TextToSpeechRequest,
)

router = APIRouter(prefix="/text-to-speech", tags=["speech"])


def _status_response(job: JobState) -> JobStatusResponse:
    return JobStatusResponse(
        id=job.id,
        title=job.title,
        status=job.status.value,
        progress=job.progress,
        total_units=job.total_units,
        error=job.error,
        audio_url=job.output_url if job.status is JobStatus.COMPLETE else None,
        audio_id=job.audio_id,
        summary=job.summary,
        artwork_url=job.artwork_url,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_text(
    payload: TextToSpeechRequest,
    service: TextToSpeechService = Depends(get_speech_service),
) -> JSONResponse:
    """Synthesize short texts immediately; queue long texts as a background job."""

    submission = await service.submit(
        SpeechRequest(
            title=payload.title,
            text=payload.text,
            voice=payload.voice,
            generate_artwork=payload.generate_artwork,
        )
    )
    if submission.job is None:
        record = AudioRecordResponse.model_validate(submission.record)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=record.model_dump(mode="json", by_alias=True),
        )
    job = submission.job
    accepted = JobAcceptedResponse(
        id=job.id,
        title=job.title,
        status=job.status.value,
        progress=job.progress,
        estimated_duration=submission.estimated_duration_seconds,
        message=f"Processing {job.text_length} characters in the background",
    )
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=accepted.model_dump(mode="json", by_alias=True),
    )


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def job_status(
    job_id: int,
    service: TextToSpeechService = Depends(get_speech_service),
) -> JobStatusResponse:
    return _status_response(service.status(job_id))


@router.post("/status/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_job(
    job_id: int,
    service: TextToSpeechService = Depends(get_speech_service),
) -> JobStatusResponse:
    return _status_response(service.cancel(job_id))
