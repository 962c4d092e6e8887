"""Chat router: run one message through a coding agent session over HTTP."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.coding_agent.db import get_storage
from src.coding_agent.llm import ModelSelection
from src.coding_agent.session_handler import AgentSessionHandler
from src.coding_agent.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def get_session_handler(storage: Storage = Depends(get_storage)) -> AgentSessionHandler:
    """A fresh handler per request / connection."""
    return AgentSessionHandler(storage)


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    message: str = Field(..., description="User message")
    session_id: str | None = Field(None, description="Optional session id to continue")
    user_id: str | None = Field(None, description="Optional user identifier stored on new sessions")
    project_path: str | None = Field(None, description="Project path recorded on new sessions")
    model: str | None = Field(
        None,
        description=(
            "Backend and model in 'provider:model' format (e.g. 'openai:gpt-4o-mini', "
            "'gemini:gemini-2.5-flash'). A bare provider name uses that backend's "
            "default model; omitted uses the configured default."
        ),
    )


class ChatResponse(BaseModel):
    """Response for POST /chat."""

    session_id: str
    reply: str
    events: list[dict[str, Any]] = Field(default_factory=list)


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    handler: AgentSessionHandler = Depends(get_session_handler),
) -> ChatResponse:
    """Run the agent loop for one message and return the final reply with every event."""
    try:
        selection = ModelSelection.parse(request.model) if request.model else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if request.session_id and await handler.storage.get_session(request.session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")

    open_message: dict[str, Any] = {
        "type": "resume_session" if request.session_id else "start_session",
        "sessionId": request.session_id,
        "userId": request.user_id,
        "projectPath": request.project_path,
        "modelProvider": selection.provider.value if selection else None,
        "modelName": selection.model if selection else None,
    }
    try:
        async for frame in handler.handle(open_message):
            if frame["type"] == "error":
                raise HTTPException(status_code=400, detail=frame["error"])

        events = [f async for f in handler.handle({"type": "user_message", "content": request.message})]
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Chat request failed")
        raise HTTPException(status_code=500, detail=str(e)) from e

    reply = ""
    for event in events:
        if event.get("type") == "response":
            reply = event.get("content", "")
    return ChatResponse(session_id=handler.session_id or "", reply=reply, events=events)


@router.get("/sessions")
async def list_sessions(storage: Storage = Depends(get_storage)) -> list[dict[str, Any]]:
    """All sessions, newest first."""
    return [s.model_dump() for s in await storage.get_all_sessions()]


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, storage: Storage = Depends(get_storage)) -> dict[str, Any]:
    """One session with its messages and tool executions."""
    session = await storage.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    messages = await storage.get_messages(session_id)
    executions = await storage.get_tool_executions(session_id)
    return {
        **session.model_dump(),
        "messages": [m.model_dump() for m in messages],
        "tool_executions": [t.model_dump() for t in executions],
    }
