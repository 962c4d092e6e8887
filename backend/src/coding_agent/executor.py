"""Tool executor: dispatch by name, time the call, never raise."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from .config import get_project_root
from .models import ToolResult
from .tools import BaseTool, build_tools

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Runs catalog tools confined to one project root."""

    def __init__(
        self,
        project_root: Path | str | None = None,
        tools: dict[str, BaseTool] | None = None,
    ) -> None:
        root = Path(project_root) if project_root is not None else get_project_root()
        self.project_root = root.resolve()
        self.tools = tools if tools is not None else build_tools(self.project_root)

    async def execute(self, name: str, tool_input: dict[str, Any] | None) -> ToolResult:
        started = time.perf_counter()
        tool = self.tools.get(name)
        if tool is None:
            result = ToolResult.fail(f"Unknown tool: {name}")
        else:
            try:
                result = await tool.execute(tool_input or {})
            except Exception as e:
                logger.exception("Tool %s raised", name)
                result = ToolResult.fail(str(e) or e.__class__.__name__)

        result.execution_time_ms = int((time.perf_counter() - started) * 1000)
        if result.success:
            logger.info("Tool %s completed in %dms", name, result.execution_time_ms)
        else:
            logger.warning("Tool %s failed in %dms: %s", name, result.execution_time_ms, result.error)
        return result
