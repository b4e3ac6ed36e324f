"""Chat, web search, and voice sample routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from ...config import AVAILABLE_VOICES
from ...services.assistant import AssistantService, ChatMessage
from ..deps import get_assistant
from ..schemas import ChatRequest, SearchRequest

router = APIRouter(tags=["assistant"])


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    assistant: AssistantService = Depends(get_assistant),
) -> dict[str, Any]:
    messages = [ChatMessage(role=message.role, content=message.content) for message in payload.messages]
    reply = await assistant.chat(messages, payload.context, payload.use_context)
    return {"response": reply}


@router.post("/search")
async def search(
    payload: SearchRequest,
    assistant: AssistantService = Depends(get_assistant),
) -> dict[str, Any]:
    result = await assistant.search(payload.query)
    return {"answer": result.answer, "citations": list(result.citations)}


@router.get("/voice-samples/{voice}")
async def voice_sample(
    voice: str,
    assistant: AssistantService = Depends(get_assistant),
) -> dict[str, Any]:
    if voice not in AVAILABLE_VOICES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Voice not found")
    return {"voice": voice, "audioUrl": await assistant.voice_sample(voice)}
