"""Search tools backed by grep, plus file metadata."""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from ..config import MAX_SEARCH_RESULTS, SEARCH_TIMEOUT_MS, SEARCH_EXCLUDED_DIRS
from ..models import ToolResult
from .base import BaseTool
from .shell import CommandTimeoutError, OutputLimitError, run_process

_GREP_LINE = re.compile(r"^([^:]+):(\d+):(.*)$")
_EXCLUDES = [f"--exclude-dir={d}" for d in SEARCH_EXCLUDED_DIRS]


def parse_grep_output(stdout: str, root: Path, limit: int = MAX_SEARCH_RESULTS) -> list[dict[str, Any]]:
    """Parse `file:line:content` lines into records with project-relative paths."""
    results: list[dict[str, Any]] = []
    for line in stdout.splitlines()[:limit]:
        m = _GREP_LINE.match(line)
        if not m:
            continue
        file = Path(m.group(1))
        if file.is_absolute():
            try:
                rel = file.relative_to(root).as_posix()
            except ValueError:
                rel = file.as_posix()
        else:
            rel = file.as_posix()
        if rel.startswith("./"):
            rel = rel[2:]
        results.append({"file": rel, "line": int(m.group(2)), "content": m.group(3).strip()})
    return results


async def _grep(argv: list[str], cwd: Path) -> tuple[str | None, str | None]:
    """Run grep; returns (stdout, error). Exit 1 means no matches."""
    try:
        out = await run_process(argv, cwd=cwd, timeout_ms=SEARCH_TIMEOUT_MS)
    except (CommandTimeoutError, OutputLimitError) as e:
        return None, str(e)
    if out.exit_code > 1:
        return None, out.stderr.strip() or f"grep failed with exit code {out.exit_code}"
    return out.stdout, None


class SearchCodebaseInput(BaseModel):
    query: str
    file_pattern: str | None = None


class SearchCodebaseTool(BaseTool):
    input_model = SearchCodebaseInput

    @property
    def name(self) -> str:
        return "search_codebase"

    @property
    def description(self) -> str:
        return (
            "Search the entire codebase for a query string. "
            "Useful for finding where specific code or text appears in the project."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query string"},
                "file_pattern": {
                    "type": "string",
                    "description": "Optional file pattern to filter results (e.g., '*.ts', '*.tsx')",
                },
            },
            "required": ["query"],
        }

    async def run(self, args: SearchCodebaseInput) -> ToolResult:
        if not args.query:
            return ToolResult.fail("Search query is required", query=args.query)
        argv = ["grep", "-r", "-n", "-i", "-F", *_EXCLUDES]
        if args.file_pattern:
            argv.append(f"--include={args.file_pattern}")
        argv += ["-e", args.query, "."]

        stdout, error = await _grep(argv, self.root)
        if error is not None:
            return ToolResult.fail(error, query=args.query, file_pattern=args.file_pattern)
        results = parse_grep_output(stdout or "", self.root)
        if not results:
            return ToolResult.ok(results=[], query=args.query, message="No matches found")
        return ToolResult.ok(
            results=results,
            query=args.query,
            file_pattern=args.file_pattern,
            total_matches=len(results),
            message=f"Found {len(results)} matches",
        )


class GrepFilesInput(BaseModel):
    pattern: str
    path: str = "."


class GrepFilesTool(BaseTool):
    input_model = GrepFilesInput

    @property
    def name(self) -> str:
        return "grep_files"

    @property
    def description(self) -> str:
        return (
            "Search files using regex patterns. "
            "More powerful than search_codebase for complex pattern matching."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regex pattern to search for"},
                "path": {
                    "type": "string",
                    "description": "Path to search in (default: '.')",
                    "default": ".",
                },
            },
            "required": ["pattern"],
        }

    async def run(self, args: GrepFilesInput) -> ToolResult:
        target = self.resolve(args.path)
        argv = ["grep", "-r", "-n", "-E", *_EXCLUDES, "-e", args.pattern, str(target)]

        stdout, error = await _grep(argv, self.root)
        if error is not None:
            return ToolResult.fail(error, pattern=args.pattern, path=args.path)
        results = parse_grep_output(stdout or "", self.root)
        if not results:
            return ToolResult.ok(
                results=[], pattern=args.pattern, path=args.path, message="No matches found"
            )
        return ToolResult.ok(
            results=results,
            pattern=args.pattern,
            path=args.path,
            total_matches=len(results),
        )


class FileInfoInput(BaseModel):
    file_path: str


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class GetFileInfoTool(BaseTool):
    input_model = FileInfoInput

    @property
    def name(self) -> str:
        return "get_file_info"

    @property
    def description(self) -> str:
        return "Get metadata about a file including size, modification date, and file type."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file"},
            },
            "required": ["file_path"],
        }

    async def run(self, args: FileInfoInput) -> ToolResult:
        path = self.resolve(args.file_path)
        try:
            st = await asyncio.to_thread(path.stat)
        except OSError as e:
            return ToolResult.fail(str(e), file_path=args.file_path)
        # st_birthtime only exists on some platforms; ctime is the closest fallback
        created = getattr(st, "st_birthtime", st.st_ctime)
        return ToolResult.ok(
            file_path=args.file_path,
            size=st.st_size,
            size_kb=f"{st.st_size / 1024:.2f}",
            is_directory=path.is_dir(),
            is_file=path.is_file(),
            created=_iso(created),
            modified=_iso(st.st_mtime),
            accessed=_iso(st.st_atime),
        )
