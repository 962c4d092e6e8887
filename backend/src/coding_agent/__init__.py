"""Coding agent: provider-agnostic LLM tool loop over a sandboxed project directory."""

from .db import SQLiteStorage, get_storage
from .executor import ToolExecutor
from .llm import ModelSelection, create_provider
from .loop import CodingAgent
from .models import AgentEvent, ToolResult, Turn
from .providers import LLMProvider, ModelProvider
from .session_handler import AgentSessionHandler
from .storage import Storage

__all__ = [
    "AgentEvent",
    "AgentSessionHandler",
    "CodingAgent",
    "LLMProvider",
    "ModelProvider",
    "ModelSelection",
    "SQLiteStorage",
    "Storage",
    "ToolExecutor",
    "ToolResult",
    "Turn",
    "create_provider",
    "get_storage",
]
