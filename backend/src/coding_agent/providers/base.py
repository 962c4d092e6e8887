"""Abstract LLM provider interface for the coding agent."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar

from ..config import BackendSettings
from ..models import ProviderResponse, ToolDef, Turn


class ModelProvider(str, Enum):
    """Supported backends, each with its own tool-calling wire format."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: str | ModelProvider | None) -> ModelProvider:
        """Resolve a provider name; "google" is accepted for Gemini."""
        if isinstance(value, ModelProvider):
            return value
        name = (value or "").strip().lower()
        if name == "google":
            name = cls.GEMINI.value
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown model provider: {value!r}") from None


# Normalized stop reasons (Anthropic vocabulary)
STOP_END_TURN = "end_turn"
STOP_TOOL_USE = "tool_use"
STOP_MAX_TOKENS = "max_tokens"
STOP_SEQUENCE = "stop_sequence"


class LLMProvider(ABC):
    """
    Abstract LLM provider. One implementation per backend.

    The agent loop only depends on `generate_response`; the history it passes
    is always in the internal block format and is never mutated here.
    """

    provider: ClassVar[ModelProvider]

    def __init__(self, settings: BackendSettings) -> None:
        self.settings = settings
        self._client: Any | None = None

    @property
    def default_model(self) -> str:
        return self.settings.model

    @abstractmethod
    async def generate_response(
        self,
        history: list[Turn],
        *,
        tools: list[ToolDef],
        system_prompt: str,
        model: str | None = None,
    ) -> ProviderResponse:
        """Ask the backend for the next action given the full history."""
        ...
