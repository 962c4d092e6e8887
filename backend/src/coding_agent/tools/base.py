"""Tool protocol shared by every concrete tool."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from ..models import ToolDef, ToolResult
from .safety import CommandRejectedError, PathAccessError, resolve_project_path


class BaseTool(ABC):
    """Base class for coding agent tools, bound to one project root."""

    input_model: ClassVar[type[BaseModel]]

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for parameters."""
        ...

    @abstractmethod
    async def run(self, args: Any) -> ToolResult:
        """Execute with validated arguments (an instance of `input_model`)."""
        ...

    async def execute(self, params: dict[str, Any]) -> ToolResult:
        try:
            args = self.input_model.model_validate(params or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in e.errors()
            )
            return ToolResult.fail(f"Invalid input for {self.name}: {problems}")
        try:
            return await self.run(args)
        except (PathAccessError, CommandRejectedError) as e:
            return ToolResult.fail(str(e))

    def resolve(self, path: str | None) -> Path:
        return resolve_project_path(self.root, path)

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix() or "."

    def to_def(self) -> ToolDef:
        return ToolDef(name=self.name, description=self.description, parameters=self.parameters)
