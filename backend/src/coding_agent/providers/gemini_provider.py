"""Google Gemini LLM provider implementation for the coding agent."""

from __future__ import annotations

import json
import uuid
from typing import Any

from google import genai
from google.genai import types as genai_types

from ..models import ProviderResponse, TextBlock, ToolCall, ToolDef, ToolResultBlock, ToolUseBlock, Turn
from .base import STOP_END_TURN, STOP_MAX_TOKENS, STOP_TOOL_USE, LLMProvider, ModelProvider


def _function_response_payload(block: ToolResultBlock) -> dict[str, Any]:
    """Gemini wants an object; tool results are JSON envelopes, plain text is wrapped."""
    try:
        parsed = json.loads(block.content)
    except (TypeError, ValueError):
        parsed = block.content
    if isinstance(parsed, dict):
        return parsed
    return {"result": parsed}


class GeminiProvider(LLMProvider):
    """Gemini provider using the google-genai SDK."""

    provider = ModelProvider.GEMINI

    def _get_client(self) -> genai.Client:
        if not self._client:
            http_options: dict[str, Any] = {"api_version": "v1beta"}
            if self.settings.base_url:
                http_options["base_url"] = self.settings.base_url
            self._client = genai.Client(
                api_key=self.settings.api_key,
                http_options=http_options,
            )
        return self._client

    @staticmethod
    def to_native_contents(history: list[Turn]) -> list[genai_types.Content]:
        """Convert history into Gemini contents (assistant -> "model", tools -> function parts)."""
        contents: list[genai_types.Content] = []
        # function_response parts must name the function; results only carry the call id
        names_by_id: dict[str, str] = {}

        for turn in history:
            role = "model" if turn.role == "assistant" else "user"
            parts: list[genai_types.Part] = []
            for block in turn.blocks():
                if isinstance(block, TextBlock):
                    if block.text:
                        parts.append(genai_types.Part(text=block.text))
                elif isinstance(block, ToolUseBlock):
                    names_by_id[block.id] = block.name
                    parts.append(
                        genai_types.Part(
                            function_call=genai_types.FunctionCall(
                                id=block.id,
                                name=block.name,
                                args=block.input,
                            )
                        )
                    )
                elif isinstance(block, ToolResultBlock):
                    parts.append(
                        genai_types.Part(
                            function_response=genai_types.FunctionResponse(
                                id=block.tool_use_id,
                                name=names_by_id.get(block.tool_use_id, "unknown_tool"),
                                response=_function_response_payload(block),
                            )
                        )
                    )
            if parts:
                contents.append(genai_types.Content(role=role, parts=parts))
        return contents

    @staticmethod
    def to_native_tools(tools: list[ToolDef]) -> list[genai_types.Tool] | None:
        """Convert the catalog into Gemini function declarations."""
        if not tools:
            return None
        function_declarations = [
            genai_types.FunctionDeclaration(
                name=t.name,
                description=t.description,
                parameters=t.parameters,
            )
            for t in tools
        ]
        return [genai_types.Tool(function_declarations=function_declarations)]

    @staticmethod
    def parse_response(resp: Any) -> ProviderResponse:
        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        finish_reason: Any = None

        candidates = getattr(resp, "candidates", None) or []
        if candidates:
            cand = candidates[0]
            finish_reason = getattr(cand, "finish_reason", None)
            content = getattr(cand, "content", None)
            for part in getattr(content, "parts", None) or []:
                fc = getattr(part, "function_call", None)
                if fc:
                    tool_calls.append(
                        ToolCall(
                            id=getattr(fc, "id", None) or f"call_{uuid.uuid4().hex[:12]}",
                            name=fc.name,
                            input=dict(fc.args) if fc.args else {},
                        )
                    )
                    continue
                text = getattr(part, "text", None)
                if text and not getattr(part, "thought", False):
                    texts.append(text)

        reason = str(getattr(finish_reason, "value", finish_reason) or "STOP")
        if reason == "STOP":
            stop_reason = STOP_TOOL_USE if tool_calls else STOP_END_TURN
        elif reason == "MAX_TOKENS":
            stop_reason = STOP_MAX_TOKENS
        else:
            stop_reason = reason.lower()

        return ProviderResponse(
            content="\n".join(texts),
            tool_calls=tool_calls,
            stop_reason=stop_reason,
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
        """Non-streaming call using Gemini generate_content."""
        client = self._get_client()
        config_args: dict[str, Any] = {"max_output_tokens": self.settings.max_tokens}
        if self.settings.temperature is not None:
            config_args["temperature"] = self.settings.temperature

        gemini_tools = self.to_native_tools(tools)
        if gemini_tools:
            config_args["tools"] = gemini_tools
            config_args["tool_config"] = genai_types.ToolConfig(
                function_calling_config=genai_types.FunctionCallingConfig(
                    mode=genai_types.FunctionCallingConfigMode.AUTO
                )
            )
            config_args["automatic_function_calling"] = genai_types.AutomaticFunctionCallingConfig(
                disable=True
            )
        if system_prompt:
            config_args["system_instruction"] = system_prompt

        resp = await client.aio.models.generate_content(
            model=model or self.default_model,
            contents=self.to_native_contents(history),
            config=genai_types.GenerateContentConfig(**config_args),
        )
        return self.parse_response(resp)
