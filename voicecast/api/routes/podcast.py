"""Podcast research, planning, and project routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from ...models.datatypes import ProjectState, to_payload
from ...research.service import parse_research_data
from ...services.podcast import PodcastProjectManager
from ..deps import get_podcast_manager
from ..schemas import PlanRequest, ProjectRequest, ResearchRequest

router = APIRouter(prefix="/podcast", tags=["podcast"])


def project_payload(project: ProjectState) -> dict[str, Any]:
    """Serialize a project snapshot, exposing its audio URL once it exists."""

    payload = to_payload(project)
    payload["outputUrl"] = project.output_url
    return payload


@router.post("/research")
async def research_topic(
    payload: ResearchRequest,
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> dict[str, Any]:
    data = await manager.research(payload.topic)
    return {"researchData": to_payload(data)}


@router.post("/plan")
async def plan_podcast(
    payload: PlanRequest,
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> dict[str, Any]:
    research_data = (
        parse_research_data(payload.research_data) if payload.research_data is not None else None
    )
    outline, guide = await manager.plan(payload.topic, payload.target_duration_minutes, research_data)
    return {"outline": to_payload(outline), "narrativeGuide": guide}


@router.post("/projects", status_code=status.HTTP_202_ACCEPTED)
async def create_project(
    payload: ProjectRequest,
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> JSONResponse:
    project_id = manager.create_project(payload.topic, payload.target_duration_minutes, payload.voice)
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=project_payload(manager.get(project_id)),
    )


@router.get("/projects")
async def list_projects(
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> list[dict[str, Any]]:
    return [project_payload(project) for project in manager.list()]


@router.get("/projects/{project_id}")
async def get_project(
    project_id: int,
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> dict[str, Any]:
    return project_payload(manager.get(project_id))


@router.post("/projects/{project_id}/cancel")
async def cancel_project(
    project_id: int,
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> dict[str, Any]:
    return project_payload(manager.cancel(project_id))


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    manager: PodcastProjectManager = Depends(get_podcast_manager),
) -> Response:
    manager.delete(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
