"""Transport-neutral session protocol: one handler per client connection."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Optional

from .config import ProviderSettings, default_model_provider
from .executor import ToolExecutor
from .loop import CodingAgent
from .providers import ModelProvider
from .storage import Storage

logger = logging.getLogger(__name__)

NO_ACTIVE_SESSION = "No active session. Please start a session first."

Frame = dict[str, Any]
AgentFactory = Callable[[str, ModelProvider, Optional[str]], CodingAgent]


def error_frame(message: str) -> Frame:
    return {"type": "error", "error": message}


class AgentSessionHandler:
    """
    Holds the current agent for one connection and turns inbound messages
    into outbound frames. Messages must be handled one at a time.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        settings: ProviderSettings | None = None,
        executor: ToolExecutor | None = None,
        agent_factory: AgentFactory | None = None,
    ) -> None:
        self.storage = storage
        self.settings = settings
        self.executor = executor or ToolExecutor()
        self._agent_factory = agent_factory or self._default_agent
        self.agent: CodingAgent | None = None
        self.session_id: str | None = None

    def _default_agent(
        self, session_id: str, model_provider: ModelProvider, model_name: str | None
    ) -> CodingAgent:
        return CodingAgent(
            session_id,
            self.storage,
            model_provider=model_provider,
            model_name=model_name,
            settings=self.settings,
            executor=self.executor,
        )

    async def handle(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        msg_type = message.get("type")
        logger.debug("Received message type: %s", msg_type)
        handler = {
            "start_session": self._start_session,
            "resume_session": self._resume_session,
            "user_message": self._user_message,
            "change_model": self._change_model,
            "get_sessions": self._get_sessions,
            "get_session_history": self._get_session_history,
        }.get(msg_type)
        if handler is None:
            yield error_frame(f"Unknown message type: {msg_type}")
            return
        try:
            async for frame in handler(message):
                yield frame
        except Exception as e:
            logger.exception("Error handling %s", msg_type)
            yield error_frame(str(e) or "An error occurred")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _start_session(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        try:
            provider = ModelProvider.parse(message.get("modelProvider") or default_model_provider())
        except ValueError as e:
            yield error_frame(str(e))
            return

        session = await self.storage.create_session(
            user_id=message.get("userId"),
            project_path=message.get("projectPath") or str(self.executor.project_root),
            model_provider=provider.value,
            model_name=message.get("modelName"),
            status="active",
        )
        agent = self._agent_factory(session.id, provider, message.get("modelName"))
        if session.model_name != agent.model_name:
            await self.storage.update_session(session.id, model_name=agent.model_name)

        self.agent = agent
        self.session_id = session.id
        logger.info("Session started: %s with %s:%s", session.id, provider.value, agent.model_name)
        yield {
            "type": "session_started",
            "sessionId": session.id,
            "modelProvider": provider.value,
            "modelName": agent.model_name,
        }

    async def _resume_session(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        session_id = message.get("sessionId")
        if not session_id:
            yield error_frame("Session ID required")
            return
        session = await self.storage.get_session(session_id)
        if session is None:
            yield error_frame("Session not found")
            return

        requested = message.get("modelProvider")
        try:
            provider = ModelProvider.parse(
                requested or session.model_provider or default_model_provider()
            )
        except ValueError as e:
            yield error_frame(str(e))
            return
        model_name = message.get("modelName")
        if model_name is None and provider.value == session.model_provider:
            model_name = session.model_name

        agent = self._agent_factory(session.id, provider, model_name)
        await agent.load_from_session()
        await self.storage.update_session(
            session.id, model_provider=provider.value, model_name=agent.model_name
        )

        self.agent = agent
        self.session_id = session.id
        logger.info("Session resumed: %s with %s:%s", session.id, provider.value, agent.model_name)
        yield {
            "type": "session_resumed",
            "sessionId": session.id,
            "modelProvider": provider.value,
            "modelName": agent.model_name,
        }

    async def _user_message(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        if self.agent is None:
            yield error_frame(NO_ACTIVE_SESSION)
            return
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            yield error_frame("Message content required")
            return
        logger.info("Processing user message in session %s", self.session_id)
        async for event in self.agent.process_message(content):
            yield event.to_wire()

    async def _change_model(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        if self.agent is None:
            yield error_frame(NO_ACTIVE_SESSION)
            return
        try:
            self.agent.set_model_provider(message.get("modelProvider"), message.get("modelName"))
        except ValueError as e:
            yield error_frame(str(e))
            return
        info = self.agent.get_model_info()
        await self.storage.update_session(
            self.agent.session_id, model_provider=info["provider"], model_name=info["model"]
        )
        logger.info("Model changed to %s:%s", info["provider"], info["model"])
        yield {
            "type": "model_changed",
            "modelProvider": info["provider"],
            "modelName": info["model"],
            "displayName": info["name"],
        }

    async def _get_sessions(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        sessions = await self.storage.get_all_sessions()
        yield {"type": "sessions_list", "sessions": [s.model_dump() for s in sessions]}

    async def _get_session_history(self, message: dict[str, Any]) -> AsyncIterator[Frame]:
        session_id = message.get("sessionId")
        if not session_id:
            yield error_frame("Session ID required")
            return
        messages = await self.storage.get_messages(session_id)
        executions = await self.storage.get_tool_executions(session_id)
        yield {
            "type": "session_history",
            "sessionId": session_id,
            "messages": [m.model_dump() for m in messages],
            "toolExecutions": [t.model_dump() for t in executions],
        }
