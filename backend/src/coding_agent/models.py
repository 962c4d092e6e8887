"""Data models for conversation history, tools, storage records and agent events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Conversation history
# ---------------------------------------------------------------------------


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class Turn(BaseModel):
    """One user or assistant turn. `model_dump()` is the Anthropic message shape."""

    role: Literal["user", "assistant"]
    content: Union[str, list[ContentBlock]]

    def blocks(self) -> list[TextBlock | ToolUseBlock | ToolResultBlock]:
        """Content as a block list; plain-text content becomes a single text block."""
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)] if self.content else []
        return list(self.content)

    def text(self) -> str:
        """Text blocks joined with newlines."""
        return "\n".join(b.text for b in self.blocks() if isinstance(b, TextBlock))


# ---------------------------------------------------------------------------
# Provider I/O
# ---------------------------------------------------------------------------


@dataclass
class ToolCall:
    """A model-issued request to run one tool."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderResponse:
    """Backend-independent result of one model call."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: str = "end_turn"
    raw: Any = None


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@dataclass
class ToolResult:
    """Result of a single tool execution."""

    success: bool
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    execution_time_ms: int | None = None

    @classmethod
    def ok(cls, **data: Any) -> ToolResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, **data: Any) -> ToolResult:
        return cls(success=False, error=error, data=data)

    def to_dict(self) -> dict[str, Any]:
        """Wire envelope fed back to the model and stored with the execution."""
        out: dict[str, Any] = {"success": self.success, **self.data}
        if self.error is not None:
            out["error"] = self.error
        if self.execution_time_ms is not None:
            out["_executionTime"] = self.execution_time_ms
        return out


@dataclass
class ToolDef:
    """Tool definition presented to the model."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema

    def to_tool_schema(self) -> dict[str, Any]:
        """Catalog wire shape (Anthropic `input_schema` dialect)."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


# ---------------------------------------------------------------------------
# Storage records
# ---------------------------------------------------------------------------


class SessionRecord(BaseModel):
    id: str
    user_id: str | None = None
    status: str = "active"  # "active" | "completed" | "error"
    project_path: str | None = None
    model_provider: str | None = None
    model_name: str | None = None
    created_at: str
    updated_at: str


class MessageRecord(BaseModel):
    id: str
    session_id: str
    role: str
    content: str
    created_at: str


class ToolExecutionRecord(BaseModel):
    id: str
    session_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] = Field(default_factory=dict)
    duration: int = 0
    success: bool = True
    created_at: str


# ---------------------------------------------------------------------------
# Agent events
# ---------------------------------------------------------------------------


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the transport's camelCase field names."""
        return self.model_dump(by_alias=True)


class ModelInfoEvent(_Event):
    type: Literal["model_info"] = "model_info"
    model_provider: str = Field(alias="modelProvider")
    model_name: str = Field(alias="modelName")


class ThinkingEvent(_Event):
    type: Literal["thinking"] = "thinking"
    content: str


class ToolUseEvent(_Event):
    type: Literal["tool_use"] = "tool_use"
    tool: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(_Event):
    type: Literal["tool_result"] = "tool_result"
    tool: str
    result: dict[str, Any]


class ResponseEvent(_Event):
    type: Literal["response"] = "response"
    content: str


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str


AgentEvent = Annotated[
    Union[
        ModelInfoEvent,
        ThinkingEvent,
        ToolUseEvent,
        ToolResultEvent,
        ResponseEvent,
        CompleteEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]
