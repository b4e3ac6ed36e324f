"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from ... import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, object]:
    executor = request.app.state.executor
    return {
        "status": "healthy",
        "service": "voicecast",
        "version": __version__,
        "activeRuns": executor.active_count,
    }
