"""Run the FastAPI app for the coding agent."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI

from src.coding_agent.config import setup_logging
from src.routers import agent_ws_router, chat_router

setup_logging()

app = FastAPI(title="Coding Agent", version="0.1.0")
app.include_router(chat_router)
app.include_router(agent_ws_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
