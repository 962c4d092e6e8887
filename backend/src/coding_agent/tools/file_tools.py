"""File tools: read, write, edit, delete, list and tree rendering."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from ..config import EDIT_PREVIEW_CHARS, LISTING_IGNORED_DIRS
from ..models import ToolResult
from .base import BaseTool

OLD_STRING_NOT_FOUND = (
    "old_string not found in file. Please read the file first to get the exact string to replace."
)


def _visible(entry: os.DirEntry | Path) -> bool:
    return not entry.name.startswith(".") and entry.name not in LISTING_IGNORED_DIRS


def _sorted_entries(directory: Path) -> list[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)


def _walk_files(directory: Path, base: Path) -> list[str]:
    files: list[str] = []
    for entry in _sorted_entries(directory):
        if not _visible(entry):
            continue
        if entry.is_dir():
            try:
                files.extend(_walk_files(Path(entry.path), base))
            except PermissionError:
                continue
        else:
            files.append(Path(entry.path).relative_to(base).as_posix())
    return files


def _tree_lines(directory: Path, prefix: str = "") -> list[str]:
    lines: list[str] = []
    try:
        entries = [e for e in _sorted_entries(directory) if _visible(e)]
    except PermissionError:
        return lines
    for i, entry in enumerate(entries):
        last = i == len(entries) - 1
        lines.append(prefix + ("└── " if last else "├── ") + entry.name)
        if entry.is_dir():
            lines.extend(_tree_lines(Path(entry.path), prefix + ("    " if last else "│   ")))
    return lines


# ---------------------------------------------------------------------------
# read_file
# ---------------------------------------------------------------------------


class ReadFileInput(BaseModel):
    file_path: str


class ReadFileTool(BaseTool):
    input_model = ReadFileInput

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return (
            "Read the contents of a file. Use this to examine code before making changes. "
            "Always read a file before attempting to edit it."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path to the file to read (e.g., 'src/index.ts', 'package.json')",
                },
            },
            "required": ["file_path"],
        }

    async def run(self, args: ReadFileInput) -> ToolResult:
        path = self.resolve(args.file_path)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            return ToolResult.fail(str(e), file_path=args.file_path)
        except UnicodeDecodeError:
            return ToolResult.fail("File is not valid UTF-8 text", file_path=args.file_path)
        return ToolResult.ok(content=content, file_path=args.file_path)


# ---------------------------------------------------------------------------
# write_file
# ---------------------------------------------------------------------------


class WriteFileInput(BaseModel):
    file_path: str
    content: str


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class WriteFileTool(BaseTool):
    input_model = WriteFileInput

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def description(self) -> str:
        return (
            "Create a new file or completely overwrite an existing file. Use this only for "
            "creating new files. For modifying existing files, prefer edit_file instead."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file to write"},
                "content": {"type": "string", "description": "Complete content to write to the file"},
            },
            "required": ["file_path", "content"],
        }

    async def run(self, args: WriteFileInput) -> ToolResult:
        path = self.resolve(args.file_path)
        try:
            await asyncio.to_thread(_write, path, args.content)
        except OSError as e:
            return ToolResult.fail(str(e), file_path=args.file_path)
        return ToolResult.ok(message=f"File written: {args.file_path}", file_path=args.file_path)


# ---------------------------------------------------------------------------
# edit_file
# ---------------------------------------------------------------------------


class EditFileInput(BaseModel):
    file_path: str
    old_string: str
    new_string: str


class EditFileTool(BaseTool):
    """Exact-substring replacement of the first occurrence; no fuzzy matching."""

    input_model = EditFileInput

    @property
    def name(self) -> str:
        return "edit_file"

    @property
    def description(self) -> str:
        return (
            "Make precise edits to an existing file by replacing old_string with new_string. "
            "This is the preferred way to modify files. Always read the file first to get the "
            "exact string to replace. The old_string must match exactly including whitespace."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file to edit"},
                "old_string": {
                    "type": "string",
                    "description": "Exact string to find and replace (must match exactly including whitespace and newlines)",
                },
                "new_string": {"type": "string", "description": "New string to replace with"},
            },
            "required": ["file_path", "old_string", "new_string"],
        }

    async def run(self, args: EditFileInput) -> ToolResult:
        if not args.old_string:
            return ToolResult.fail("old_string must not be empty", file_path=args.file_path)
        path = self.resolve(args.file_path)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
            if args.old_string not in content:
                return ToolResult.fail(OLD_STRING_NOT_FOUND, file_path=args.file_path)
            new_content = content.replace(args.old_string, args.new_string, 1)
            await asyncio.to_thread(path.write_text, new_content, encoding="utf-8")
        except OSError as e:
            return ToolResult.fail(str(e), file_path=args.file_path)
        except UnicodeDecodeError:
            return ToolResult.fail("File is not valid UTF-8 text", file_path=args.file_path)
        return ToolResult.ok(
            message=f"File edited: {args.file_path}",
            file_path=args.file_path,
            preview=new_content[:EDIT_PREVIEW_CHARS],
        )


# ---------------------------------------------------------------------------
# delete_file
# ---------------------------------------------------------------------------


class DeleteFileInput(BaseModel):
    file_path: str


class DeleteFileTool(BaseTool):
    input_model = DeleteFileInput

    @property
    def name(self) -> str:
        return "delete_file"

    @property
    def description(self) -> str:
        return "Delete a file. Use with caution as this operation cannot be undone."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file to delete"},
            },
            "required": ["file_path"],
        }

    async def run(self, args: DeleteFileInput) -> ToolResult:
        path = self.resolve(args.file_path)
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as e:
            return ToolResult.fail(str(e), file_path=args.file_path)
        return ToolResult.ok(message=f"File deleted: {args.file_path}", file_path=args.file_path)


# ---------------------------------------------------------------------------
# list_files / get_file_structure
# ---------------------------------------------------------------------------


class ListFilesInput(BaseModel):
    directory: str = "."
    recursive: bool = False


def _list_entries(directory: Path) -> list[dict[str, str]]:
    return [
        {"name": e.name, "type": "directory" if e.is_dir() else "file"}
        for e in _sorted_entries(directory)
        if not e.name.startswith(".")
    ]


class ListFilesTool(BaseTool):
    input_model = ListFilesInput

    @property
    def name(self) -> str:
        return "list_files"

    @property
    def description(self) -> str:
        return "List files and directories in a given path. Use this to explore the project structure."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "directory": {
                    "type": "string",
                    "description": "Directory path to list (default: '.')",
                    "default": ".",
                },
                "recursive": {
                    "type": "boolean",
                    "description": "Whether to list files recursively",
                    "default": False,
                },
            },
            "required": [],
        }

    async def run(self, args: ListFilesInput) -> ToolResult:
        path = self.resolve(args.directory)
        if not path.is_dir():
            return ToolResult.fail("Path is not a directory", directory=args.directory)
        try:
            if args.recursive:
                files: list[Any] = await asyncio.to_thread(_walk_files, path, path)
            else:
                files = await asyncio.to_thread(_list_entries, path)
        except OSError as e:
            return ToolResult.fail(str(e), directory=args.directory)
        return ToolResult.ok(files=files, directory=args.directory)


class FileStructureInput(BaseModel):
    path: str = "."


class GetFileStructureTool(BaseTool):
    input_model = FileStructureInput

    @property
    def name(self) -> str:
        return "get_file_structure"

    @property
    def description(self) -> str:
        return (
            "Get a tree-like visualization of the directory structure. "
            "Useful for understanding project organization."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Path to get structure for (default: '.')",
                    "default": ".",
                },
            },
            "required": [],
        }

    async def run(self, args: FileStructureInput) -> ToolResult:
        path = self.resolve(args.path)
        if not path.is_dir():
            return ToolResult.fail("Path is not a directory", path=args.path)
        lines = await asyncio.to_thread(_tree_lines, path)
        return ToolResult.ok(structure="\n".join([args.path, *lines]), path=args.path)
