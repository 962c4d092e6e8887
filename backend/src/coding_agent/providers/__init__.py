"""LLM providers: one backend implementation per supported wire format."""

from .anthropic_provider import AnthropicProvider
from .base import LLMProvider, ModelProvider
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "ModelProvider",
    "AnthropicProvider",
    "OpenAIProvider",
    "GeminiProvider",
]
