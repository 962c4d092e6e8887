"""Shell tools: whitelisted bash commands and package installers."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ..config import DEFAULT_COMMAND_TIMEOUT_MS, INSTALL_TIMEOUT_MS
from ..models import ToolResult
from .base import BaseTool
from .safety import CommandRejectedError, check_command
from .shell import CommandTimeoutError, OutputLimitError, run_process

logger = logging.getLogger(__name__)


async def run_checked(root: Path, command: str, timeout_ms: int) -> ToolResult:
    """Check `command` against the command policy, then run it through the shell in `root`."""
    try:
        check_command(command)
    except CommandRejectedError as e:
        logger.warning("Rejected command %r: %s", command, e)
        return ToolResult.fail(str(e), stdout="", stderr=str(e), exit_code=1)

    try:
        out = await run_process(command, cwd=root, timeout_ms=timeout_ms)
    except (CommandTimeoutError, OutputLimitError) as e:
        return ToolResult.fail(str(e), stdout="", stderr=str(e), exit_code=1, command=command)

    fields = {
        "stdout": out.stdout.strip(),
        "stderr": out.stderr.strip(),
        "exit_code": out.exit_code,
        "command": command,
    }
    if out.exit_code != 0:
        return ToolResult.fail(f"Command failed with exit code {out.exit_code}", **fields)
    return ToolResult.ok(**fields)


class BashCommandInput(BaseModel):
    command: str
    timeout_ms: int = Field(default=DEFAULT_COMMAND_TIMEOUT_MS, gt=0)


class BashCommandTool(BaseTool):
    input_model = BashCommandInput

    @property
    def name(self) -> str:
        return "bash_command"

    @property
    def description(self) -> str:
        return (
            "Execute a bash command. Use for running code, tests, or system operations. "
            "Only whitelisted commands are allowed for security."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The bash command to execute (e.g., 'npm test', 'node index.js')",
                },
                "timeout_ms": {
                    "type": "number",
                    "description": f"Timeout in milliseconds (default: {DEFAULT_COMMAND_TIMEOUT_MS})",
                    "default": DEFAULT_COMMAND_TIMEOUT_MS,
                },
            },
            "required": ["command"],
        }

    async def run(self, args: BashCommandInput) -> ToolResult:
        return await run_checked(self.root, args.command, args.timeout_ms)


def _install_result(result: ToolResult, packages: list[str], **extra: Any) -> ToolResult:
    joined = " ".join(packages)
    result.data.update(packages=packages, **extra)
    result.data["message"] = (
        f"Successfully installed: {joined}" if result.success else f"Failed to install: {joined}"
    )
    return result


class InstallNpmInput(BaseModel):
    packages: list[str] = Field(default_factory=list)
    dev: bool = False


class InstallNpmPackageTool(BaseTool):
    input_model = InstallNpmInput

    @property
    def name(self) -> str:
        return "install_npm_package"

    @property
    def description(self) -> str:
        return "Install npm packages. This will run 'npm install' with the specified packages."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "packages": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of package names to install (e.g., ['express', 'lodash'])",
                },
                "dev": {
                    "type": "boolean",
                    "description": "Whether to install as dev dependencies (--save-dev)",
                    "default": False,
                },
            },
            "required": ["packages"],
        }

    async def run(self, args: InstallNpmInput) -> ToolResult:
        if not args.packages:
            return ToolResult.fail("No packages specified")
        flag = "--save-dev" if args.dev else "--save"
        command = " ".join(["npm", "install", flag, *(shlex.quote(p) for p in args.packages)])
        result = await run_checked(self.root, command, INSTALL_TIMEOUT_MS)
        return _install_result(result, args.packages, dev=args.dev)


class InstallPipInput(BaseModel):
    packages: list[str] = Field(default_factory=list)


class InstallPipPackageTool(BaseTool):
    input_model = InstallPipInput

    @property
    def name(self) -> str:
        return "install_pip_package"

    @property
    def description(self) -> str:
        return (
            "Install Python packages using pip. "
            "This will run 'pip install' with the specified packages."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "packages": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of package names to install (e.g., ['requests', 'flask'])",
                },
            },
            "required": ["packages"],
        }

    async def run(self, args: InstallPipInput) -> ToolResult:
        if not args.packages:
            return ToolResult.fail("No packages specified")
        command = " ".join(["pip", "install", *(shlex.quote(p) for p in args.packages)])
        result = await run_checked(self.root, command, INSTALL_TIMEOUT_MS)
        return _install_result(result, args.packages)
