"""Tool implementations and the catalog exposed to the model."""

from .base import BaseTool
from .catalog import build_tools, get_tool_definitions
from .safety import ACCESS_DENIED, CommandRejectedError, PathAccessError, check_command

__all__ = [
    "ACCESS_DENIED",
    "BaseTool",
    "CommandRejectedError",
    "PathAccessError",
    "build_tools",
    "check_command",
    "get_tool_definitions",
]
