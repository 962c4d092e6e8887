"""OpenAI Chat Completions provider."""

from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from ..models import ProviderResponse, TextBlock, ToolCall, ToolDef, ToolResultBlock, ToolUseBlock, Turn
from .base import STOP_END_TURN, STOP_MAX_TOKENS, STOP_TOOL_USE, LLMProvider, ModelProvider

logger = logging.getLogger(__name__)

_FINISH_REASONS = {
    "stop": STOP_END_TURN,
    "tool_calls": STOP_TOOL_USE,
    "function_call": STOP_TOOL_USE,
    "length": STOP_MAX_TOKENS,
}


class OpenAIProvider(LLMProvider):
    """OpenAI-backed LLM provider using the Chat Completions API."""

    provider = ModelProvider.OPENAI

    def _get_client(self) -> AsyncOpenAI:
        if not self._client:
            kwargs: dict[str, Any] = {"api_key": self.settings.api_key}
            if self.settings.base_url:
                kwargs["base_url"] = self.settings.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    @staticmethod
    def to_native_messages(history: list[Turn], system_prompt: str = "") -> list[dict[str, Any]]:
        """Flatten block turns into role-tagged chat messages."""
        out: list[dict[str, Any]] = []
        if system_prompt:
            out.append({"role": "system", "content": system_prompt})
        for turn in history:
            if isinstance(turn.content, str):
                out.append({"role": turn.role, "content": turn.content})
                continue

            texts = [b.text for b in turn.content if isinstance(b, TextBlock)]
            if turn.role == "user":
                # Tool results become separate tool messages keyed by call id
                for block in turn.content:
                    if isinstance(block, ToolResultBlock):
                        out.append(
                            {
                                "role": "tool",
                                "tool_call_id": block.tool_use_id,
                                "content": block.content,
                            }
                        )
                if texts:
                    out.append({"role": "user", "content": "\n".join(texts)})
                continue

            tool_calls = [
                {
                    "id": block.id,
                    "type": "function",
                    "function": {"name": block.name, "arguments": json.dumps(block.input)},
                }
                for block in turn.content
                if isinstance(block, ToolUseBlock)
            ]
            if tool_calls:
                out.append(
                    {
                        "role": "assistant",
                        "content": "\n".join(texts) or None,
                        "tool_calls": tool_calls,
                    }
                )
            else:
                out.append({"role": "assistant", "content": "\n".join(texts)})
        return out

    @staticmethod
    def to_native_tools(tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Rename `input_schema` to the function-calling `parameters` dialect."""
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]

    @staticmethod
    def _parse_tool_calls(choice_message: Any) -> list[ToolCall]:
        """Map OpenAI tool_calls into ToolCall records."""
        tool_calls: list[ToolCall] = []
        for tc in getattr(choice_message, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            if fn is None:
                continue
            raw_args = getattr(fn, "arguments", None) or "{}"
            if isinstance(raw_args, str):
                try:
                    params = json.loads(raw_args)
                except json.JSONDecodeError:
                    logger.warning("Unparseable arguments for tool %s: %r", fn.name, raw_args)
                    params = {}
            else:
                params = raw_args
            if not isinstance(params, dict):
                params = {}
            tool_calls.append(ToolCall(id=getattr(tc, "id", "") or "", name=fn.name, input=params))
        return tool_calls

    @classmethod
    def parse_response(cls, resp: Any) -> ProviderResponse:
        if not getattr(resp, "choices", None):
            return ProviderResponse(content="", stop_reason=STOP_END_TURN, raw=resp)
        choice = resp.choices[0]
        message = choice.message
        finish = getattr(choice, "finish_reason", None) or "stop"
        return ProviderResponse(
            content=message.content or "",
            tool_calls=cls._parse_tool_calls(message),
            stop_reason=_FINISH_REASONS.get(finish, finish),
            raw=resp,
        )

    async def generate_response(
        self,
        history: list[Turn],
        *,
        tools: list[ToolDef],
        system_prompt: str,
        model: str | None = None,
    ) -> ProviderResponse:
        client = self._get_client()
        params: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": self.to_native_messages(history, system_prompt),
            "max_tokens": self.settings.max_tokens,
        }
        if self.settings.temperature is not None:
            params["temperature"] = self.settings.temperature
        if tools:
            params["tools"] = self.to_native_tools(tools)

        resp = await client.chat.completions.create(**params)
        return self.parse_response(resp)
