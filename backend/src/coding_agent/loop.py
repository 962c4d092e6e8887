"""Agent loop: model call -> tool execution -> repeat, streamed as events."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

from .config import DEFAULT_MAX_ITERATIONS, ProviderSettings, default_model_provider
from .executor import ToolExecutor
from .llm import create_provider, get_model_display_name
from .models import (
    AgentEvent,
    CompleteEvent,
    ErrorEvent,
    ModelInfoEvent,
    ResponseEvent,
    TextBlock,
    ThinkingEvent,
    ToolCall,
    ToolDef,
    ToolResultBlock,
    ToolResultEvent,
    ToolUseBlock,
    ToolUseEvent,
    Turn,
)
from .providers import LLMProvider, ModelProvider
from .storage import Storage
from .system_prompt_loader import get_default_system_prompt
from .tools import get_tool_definitions

logger = logging.getLogger(__name__)

MAX_ITERATIONS_ERROR = (
    "Maximum iterations reached. The task may be too complex or the agent is stuck in a loop."
)
INTERRUPTED_RESULT = json.dumps({"success": False, "error": "Tool execution was interrupted"})


class CodingAgent:
    """
    Drives one session's conversation with a model and the local tools.

    One instance owns one in-memory history. `process_message` must not be
    called concurrently on the same instance.
    """

    def __init__(
        self,
        session_id: str,
        storage: Storage,
        *,
        model_provider: ModelProvider | str | None = None,
        model_name: str | None = None,
        provider: LLMProvider | None = None,
        executor: ToolExecutor | None = None,
        settings: ProviderSettings | None = None,
        system_prompt: str | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tools: list[ToolDef] | None = None,
    ) -> None:
        self.session_id = session_id
        self.storage = storage
        self._settings = settings
        self.executor = executor or ToolExecutor()
        self.tools = tools if tools is not None else get_tool_definitions()
        self.system_prompt = system_prompt if system_prompt is not None else get_default_system_prompt()
        self.max_iterations = max_iterations
        self.history: list[Turn] = []

        if provider is not None:
            self.model_provider = ModelProvider.parse(
                model_provider or getattr(provider, "provider", None) or default_model_provider()
            )
            self.provider = provider
        else:
            self.model_provider = ModelProvider.parse(model_provider or default_model_provider())
            self.provider = create_provider(self.model_provider, self.settings)
        self.model_name = model_name or self.provider.default_model

    @property
    def settings(self) -> ProviderSettings:
        if self._settings is None:
            self._settings = ProviderSettings.from_env()
        return self._settings

    # ------------------------------------------------------------------
    # Model selection
    # ------------------------------------------------------------------

    def set_model_provider(
        self, model_provider: ModelProvider | str, model_name: str | None = None
    ) -> None:
        """Switch backend/model for subsequent calls; history is left untouched."""
        resolved = ModelProvider.parse(model_provider)
        self.provider = create_provider(resolved, self.settings)
        self.model_provider = resolved
        self.model_name = model_name or self.provider.default_model
        logger.info(
            "Session %s switched to %s:%s", self.session_id, resolved.value, self.model_name
        )

    def get_model_info(self) -> dict[str, str]:
        return {
            "provider": self.model_provider.value,
            "model": self.model_name,
            "name": get_model_display_name(self.model_provider, self.model_name),
        }

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_conversation_history(self) -> list[Turn]:
        return list(self.history)

    async def load_from_session(self) -> None:
        """
        Rebuild history from stored messages.

        Only user/assistant text turns are restored; tool calls and results of
        earlier cycles are not replayed.
        """
        messages = await self.storage.get_messages(self.session_id)
        self.history = [
            Turn(role=m.role, content=m.content)
            for m in messages
            if m.role in ("user", "assistant") and m.content
        ]
        logger.info("Loaded %d turns for session %s", len(self.history), self.session_id)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_message(self, user_message: str) -> AsyncIterator[AgentEvent]:
        """Run one user message to a terminal state, yielding events as they happen."""
        yield ModelInfoEvent(model_provider=self.model_provider.value, model_name=self.model_name)

        failed = False
        try:
            await self.storage.add_message(self.session_id, "user", user_message)
            self.history.append(Turn(role="user", content=user_message))
            async for event in self._run_cycles():
                yield event
        except Exception as e:
            logger.exception("Agent loop failed for session %s", self.session_id)
            failed = True
            yield ErrorEvent(error=str(e) or e.__class__.__name__)
            await self.storage.update_session(self.session_id, status="error")

        if not failed:
            await self.storage.update_session(self.session_id, status="completed")

    async def _run_cycles(self) -> AsyncIterator[AgentEvent]:
        for iteration in range(1, self.max_iterations + 1):
            logger.info("Iteration %d/%d (session %s)", iteration, self.max_iterations, self.session_id)
            response = await self.provider.generate_response(
                self.history,
                tools=self.tools,
                system_prompt=self.system_prompt,
                model=self.model_name,
            )
            logger.debug("Stop reason: %s", response.stop_reason)

            if not response.tool_calls:
                if response.content.strip():
                    await self.storage.add_message(self.session_id, "assistant", response.content)
                    self.history.append(Turn(role="assistant", content=response.content))
                    yield ResponseEvent(content=response.content)
                yield CompleteEvent()
                return

            if response.content.strip():
                yield ThinkingEvent(content=response.content)

            async for event in self._run_tools(response.content, response.tool_calls):
                yield event

        logger.warning(
            "Max iterations (%d) reached for session %s", self.max_iterations, self.session_id
        )
        yield ErrorEvent(error=MAX_ITERATIONS_ERROR)

    async def _run_tools(self, text: str, calls: list[ToolCall]) -> AsyncIterator[AgentEvent]:
        blocks: list[TextBlock | ToolUseBlock] = [TextBlock(text=text)] if text.strip() else []
        blocks += [ToolUseBlock(id=c.id, name=c.name, input=c.input) for c in calls]
        self.history.append(Turn(role="assistant", content=blocks))

        results: dict[str, ToolResultBlock] = {}
        try:
            for call in calls:
                yield ToolUseEvent(tool=call.name, input=call.input)
                result = await self.executor.execute(call.name, call.input)
                payload = result.to_dict()
                await self.storage.log_tool_execution(
                    self.session_id,
                    call.name,
                    call.input,
                    payload,
                    result.execution_time_ms or 0,
                    result.success,
                )
                results[call.id] = ToolResultBlock(
                    tool_use_id=call.id,
                    content=json.dumps(payload, default=str),
                    is_error=not result.success,
                )
                yield ToolResultEvent(tool=call.name, result=payload)
        finally:
            # every tool_use in history gets exactly one tool_result
            self.history.append(
                Turn(
                    role="user",
                    content=[
                        results.get(c.id)
                        or ToolResultBlock(tool_use_id=c.id, content=INTERRUPTED_RESULT, is_error=True)
                        for c in calls
                    ],
                )
            )
