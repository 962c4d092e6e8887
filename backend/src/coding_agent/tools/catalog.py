"""The fixed tool catalog presented to every model backend."""

from __future__ import annotations

from pathlib import Path

from ..config import get_project_root, git_tools_enabled
from ..models import ToolDef
from .base import BaseTool
from .bash_tools import BashCommandTool, InstallNpmPackageTool, InstallPipPackageTool
from .file_tools import (
    DeleteFileTool,
    EditFileTool,
    GetFileStructureTool,
    ListFilesTool,
    ReadFileTool,
    WriteFileTool,
)
from .git_tools import GitCommitTool, GitDiffTool, GitStatusTool
from .search_tools import GetFileInfoTool, GrepFilesTool, SearchCodebaseTool

CORE_TOOL_CLASSES: tuple[type[BaseTool], ...] = (
    ReadFileTool,
    WriteFileTool,
    EditFileTool,
    DeleteFileTool,
    ListFilesTool,
    GetFileStructureTool,
    BashCommandTool,
    InstallNpmPackageTool,
    InstallPipPackageTool,
    SearchCodebaseTool,
    GrepFilesTool,
    GetFileInfoTool,
)

GIT_TOOL_CLASSES: tuple[type[BaseTool], ...] = (GitStatusTool, GitDiffTool, GitCommitTool)


def build_tools(root: Path) -> dict[str, BaseTool]:
    """Instantiate every tool (git included) bound to `root`, keyed by name."""
    tools = [cls(root) for cls in (*CORE_TOOL_CLASSES, *GIT_TOOL_CLASSES)]
    return {t.name: t for t in tools}


def get_tool_definitions(include_git: bool | None = None) -> list[ToolDef]:
    """Catalog entries shown to the model; git entries only when enabled."""
    if include_git is None:
        include_git = git_tools_enabled()
    classes = CORE_TOOL_CLASSES + (GIT_TOOL_CLASSES if include_git else ())
    root = get_project_root()
    return [cls(root).to_def() for cls in classes]
