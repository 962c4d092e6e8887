"""LLM facade: provider/model selection and backend construction."""

from __future__ import annotations

from dataclasses import dataclass

from .config import ProviderSettings
from .providers import (
    AnthropicProvider,
    GeminiProvider,
    LLMProvider,
    ModelProvider,
    OpenAIProvider,
)

ANTHROPIC_MODELS = {
    "claude-sonnet-4-5": "Claude Sonnet 4.5",
    "claude-opus-4-1": "Claude Opus 4.1",
    "claude-3-5-sonnet-20241022": "Claude 3.5 Sonnet",
    "claude-3-5-haiku-20241022": "Claude 3.5 Haiku",
}

OPENAI_MODELS = {
    "gpt-5.1": "GPT-5.1",
    "gpt-4o": "GPT-4o",
    "gpt-4o-mini": "GPT-4o Mini",
    "gpt-4-turbo": "GPT-4 Turbo",
    "gpt-4": "GPT-4",
    "llama3-8b-instruct": "Llama 3 8B Instruct",
    "qwen/qwen3-next-80b-a3b-instruct": "Qwen3 Next 80B",
    "deepseek-ai/deepseek-v3.1": "DeepSeek v3.1",
    "moonshotai/kimi-k2-instruct-0905": "Kimi K2 Instruct",
}

GEMINI_MODELS = {
    "gemini-2.5-pro": "Gemini 2.5 Pro",
    "gemini-2.5-flash": "Gemini 2.5 Flash",
    "gemini-2.0-flash": "Gemini 2.0 Flash",
}

_MODEL_TABLES = {
    ModelProvider.ANTHROPIC: ANTHROPIC_MODELS,
    ModelProvider.OPENAI: OPENAI_MODELS,
    ModelProvider.GEMINI: GEMINI_MODELS,
}

_PROVIDER_CLASSES: dict[ModelProvider, type[LLMProvider]] = {
    ModelProvider.ANTHROPIC: AnthropicProvider,
    ModelProvider.OPENAI: OpenAIProvider,
    ModelProvider.GEMINI: GeminiProvider,
}


@dataclass(frozen=True)
class ModelSelection:
    """Which backend to call and (optionally) which model on it."""

    provider: ModelProvider
    model: str | None = None

    @classmethod
    def parse(cls, value: str) -> ModelSelection:
        """
        Parse a selection string.

        Expected formats:
        - "provider:model_name" (e.g. "openai:gpt-4o", "gemini:gemini-2.5-flash")
        - "provider" → that backend's configured default model.
        """
        if ":" in value:
            provider_name, raw_model = value.split(":", 1)
            return cls(ModelProvider.parse(provider_name), raw_model.strip() or None)
        return cls(ModelProvider.parse(value))


def get_model_display_name(provider: ModelProvider, model: str) -> str:
    """Human-readable model name; unknown models display as themselves."""
    return _MODEL_TABLES[provider].get(model, model)


def create_provider(
    provider: ModelProvider | str,
    settings: ProviderSettings | None = None,
) -> LLMProvider:
    """Build a fresh backend instance configured from `settings` (or the environment)."""
    resolved = ModelProvider.parse(provider)
    cfg = settings or ProviderSettings.from_env()
    return _PROVIDER_CLASSES[resolved](cfg.for_provider(resolved.value))
