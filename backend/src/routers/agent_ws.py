"""WebSocket endpoint streaming coding agent events."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from src.coding_agent.session_handler import AgentSessionHandler, error_frame

from .chat import get_session_handler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["agent"])


@router.websocket("/agent-ws")
async def agent_ws(
    websocket: WebSocket,
    handler: AgentSessionHandler = Depends(get_session_handler),
) -> None:
    """One handler per connection; inbound messages are processed one at a time."""
    await websocket.accept()
    logger.info("Client connected")
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json(error_frame("Invalid JSON message"))
                continue
            if not isinstance(message, dict):
                await websocket.send_json(error_frame("Message must be a JSON object"))
                continue
            async for frame in handler.handle(message):
                await websocket.send_json(frame)
    except WebSocketDisconnect:
        logger.info("Client disconnected (session %s)", handler.session_id)
