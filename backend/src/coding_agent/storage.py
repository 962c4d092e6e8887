"""Storage contract consumed by the agent loop and the session transport."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .models import MessageRecord, SessionRecord, ToolExecutionRecord


class Storage(ABC):
    """Session, message and tool-execution persistence keyed by session id."""

    @abstractmethod
    async def create_session(
        self,
        *,
        user_id: str | None = None,
        project_path: str | None = None,
        model_provider: str | None = None,
        model_name: str | None = None,
        status: str = "active",
    ) -> SessionRecord:
        ...

    @abstractmethod
    async def get_session(self, session_id: str) -> SessionRecord | None:
        ...

    @abstractmethod
    async def get_all_sessions(self) -> list[SessionRecord]:
        """All sessions, newest first."""
        ...

    @abstractmethod
    async def update_session(self, session_id: str, **patch: Any) -> SessionRecord | None:
        """Apply `patch` to known columns; None when the session does not exist."""
        ...

    @abstractmethod
    async def add_message(self, session_id: str, role: str, content: str) -> MessageRecord:
        ...

    @abstractmethod
    async def get_messages(self, session_id: str) -> list[MessageRecord]:
        """Messages in chronological order."""
        ...

    @abstractmethod
    async def log_tool_execution(
        self,
        session_id: str,
        tool_name: str,
        input: dict[str, Any],
        output: dict[str, Any],
        duration: int,
        success: bool,
    ) -> ToolExecutionRecord:
        ...

    @abstractmethod
    async def get_tool_executions(self, session_id: str) -> list[ToolExecutionRecord]:
        """Tool executions in chronological order."""
        ...
