"""Anthropic Messages API provider (the native history format)."""

from __future__ import annotations

from typing import Any

from anthropic import AsyncAnthropic

from ..models import ProviderResponse, ToolCall, ToolDef, Turn
from .base import STOP_END_TURN, LLMProvider, ModelProvider


class AnthropicProvider(LLMProvider):
    """Anthropic provider. History and tool catalog are sent as-is."""

    provider = ModelProvider.ANTHROPIC

    def _get_client(self) -> AsyncAnthropic:
        if not self._client:
            kwargs: dict[str, Any] = {"api_key": self.settings.api_key}
            if self.settings.base_url:
                kwargs["base_url"] = self.settings.base_url
            self._client = AsyncAnthropic(**kwargs)
        return self._client

    @staticmethod
    def to_native_messages(history: list[Turn]) -> list[dict[str, Any]]:
        return [turn.model_dump() for turn in history]

    @staticmethod
    def to_native_tools(tools: list[ToolDef]) -> list[dict[str, Any]]:
        return [t.to_tool_schema() for t in tools]

    @staticmethod
    def parse_response(resp: Any) -> ProviderResponse:
        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in getattr(resp, "content", None) or []:
            kind = getattr(block, "type", None)
            if kind == "text":
                texts.append(block.text)
            elif kind == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, input=dict(block.input or {}))
                )
        return ProviderResponse(
            content="\n".join(texts),
            tool_calls=tool_calls,
            stop_reason=getattr(resp, "stop_reason", None) or STOP_END_TURN,
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
            "max_tokens": self.settings.max_tokens,
            "messages": self.to_native_messages(history),
        }
        if system_prompt:
            params["system"] = system_prompt
        if tools:
            params["tools"] = self.to_native_tools(tools)
        resp = await client.messages.create(**params)
        return self.parse_response(resp)
