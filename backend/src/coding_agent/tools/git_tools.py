"""Git tools: status, diff and commit in the project root."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel

from ..config import GIT_STATUS_TIMEOUT_MS, GIT_TIMEOUT_MS, MAX_COMMIT_MESSAGE_LENGTH
from ..models import ToolResult
from .base import BaseTool
from .shell import CommandTimeoutError, OutputLimitError, ProcessOutput, run_process

NOT_A_REPO = "Not a git repository. Initialize with 'git init' first."
NOTHING_TO_COMMIT = "No changes to commit. Use git_status to check repository status."
NO_IDENTITY = "Git user not configured. Set user.name and user.email with 'git config' first."

_COMMIT_HASH = re.compile(r"\[.*?([a-f0-9]{7,})\]")


def _is_not_repo(text: str) -> bool:
    return "not a git repository" in text.lower()


def _failure_fields(out: ProcessOutput) -> dict[str, Any]:
    return {
        "stdout": out.stdout.strip(),
        "stderr": out.stderr.strip(),
        "exit_code": out.exit_code,
    }


class GitTool(BaseTool):
    """Base for tools that run git through an argument vector in the project root."""

    async def git(self, *args: str, timeout_ms: int = GIT_TIMEOUT_MS) -> ProcessOutput | ToolResult:
        try:
            return await run_process(["git", *args], cwd=self.root, timeout_ms=timeout_ms)
        except (CommandTimeoutError, OutputLimitError) as e:
            return ToolResult.fail(str(e), stdout="", stderr=str(e), exit_code=1)
        except FileNotFoundError:
            return ToolResult.fail("git executable not found", stdout="", stderr="", exit_code=127)


class GitStatusInput(BaseModel):
    pass


class GitStatusTool(GitTool):
    input_model = GitStatusInput

    @property
    def name(self) -> str:
        return "git_status"

    @property
    def description(self) -> str:
        return "Show the working tree status (modified, added and untracked files) in porcelain format."

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def run(self, args: GitStatusInput) -> ToolResult:
        out = await self.git("status", "--porcelain", timeout_ms=GIT_STATUS_TIMEOUT_MS)
        if isinstance(out, ToolResult):
            return out
        if out.exit_code != 0:
            not_repo = _is_not_repo(out.stderr)
            return ToolResult.fail(
                NOT_A_REPO if not_repo else out.stderr.strip() or "git status failed",
                is_not_git_repo=not_repo,
                **_failure_fields(out),
            )
        stdout = out.stdout.strip()
        return ToolResult.ok(
            stdout=stdout,
            stderr=out.stderr.strip(),
            exit_code=0,
            message="Git status retrieved" if stdout else "No changes detected",
            has_changes=bool(stdout),
        )


class GitDiffInput(BaseModel):
    file_path: str | None = None


class GitDiffTool(GitTool):
    input_model = GitDiffInput

    @property
    def name(self) -> str:
        return "git_diff"

    @property
    def description(self) -> str:
        return "Show uncommitted changes, optionally limited to a single file."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Optional file to show the diff for",
                },
            },
            "required": [],
        }

    async def run(self, args: GitDiffInput) -> ToolResult:
        argv = ["diff"]
        if args.file_path:
            argv += ["--", self.relative(self.resolve(args.file_path))]
        out = await self.git(*argv)
        if isinstance(out, ToolResult):
            out.data["file_path"] = args.file_path
            return out
        if out.exit_code != 0:
            combined = out.stderr + out.stdout
            not_repo = _is_not_repo(combined)
            if not_repo:
                error = NOT_A_REPO
            elif args.file_path and (
                "does not exist" in combined or "unknown revision or path" in combined
            ):
                error = f"File not found: {args.file_path}"
            else:
                error = out.stderr.strip() or "git diff failed"
            return ToolResult.fail(
                error, is_not_git_repo=not_repo, file_path=args.file_path, **_failure_fields(out)
            )
        stdout = out.stdout.strip()
        if stdout:
            message = f"Diff retrieved for {args.file_path}" if args.file_path else "Diff retrieved"
        else:
            message = "No uncommitted changes"
        return ToolResult.ok(
            stdout=stdout,
            stderr=out.stderr.strip(),
            exit_code=0,
            message=message,
            has_diff=bool(stdout),
            file_path=args.file_path,
        )


class GitCommitInput(BaseModel):
    message: str = ""


class GitCommitTool(GitTool):
    input_model = GitCommitInput

    @property
    def name(self) -> str:
        return "git_commit"

    @property
    def description(self) -> str:
        return "Stage all changes (git add -A) and create a commit with the given message."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message": {
                    "type": "string",
                    "description": f"Commit message (max {MAX_COMMIT_MESSAGE_LENGTH} characters)",
                },
            },
            "required": ["message"],
        }

    def _classify(self, out: ProcessOutput, message: str) -> ToolResult:
        combined = out.stderr + out.stdout
        not_repo = _is_not_repo(combined)
        nothing = "nothing to commit" in combined or "nothing added to commit" in combined
        no_identity = "user.name" in combined or "user.email" in combined
        if not_repo:
            error = NOT_A_REPO
        elif nothing:
            error = NOTHING_TO_COMMIT
        elif no_identity:
            error = NO_IDENTITY
        else:
            error = out.stderr.strip() or out.stdout.strip() or "git commit failed"
        return ToolResult.fail(
            error,
            is_not_git_repo=not_repo,
            nothing_to_commit=nothing,
            commit_message=message,
            **_failure_fields(out),
        )

    async def run(self, args: GitCommitInput) -> ToolResult:
        message = args.message
        if not message.strip():
            return ToolResult.fail(
                "Commit message is required and cannot be empty",
                stdout="",
                stderr="Commit message cannot be empty",
                exit_code=1,
            )
        if len(message) > MAX_COMMIT_MESSAGE_LENGTH:
            return ToolResult.fail(
                f"Commit message must be {MAX_COMMIT_MESSAGE_LENGTH} characters or less",
                stdout="",
                stderr="Commit message too long",
                exit_code=1,
            )

        added = await self.git("add", "-A")
        if isinstance(added, ToolResult):
            return added
        if added.exit_code != 0:
            return self._classify(added, message)

        out = await self.git("commit", "-m", message)
        if isinstance(out, ToolResult):
            return out
        if out.exit_code != 0:
            return self._classify(out, message)

        m = _COMMIT_HASH.search(out.stdout)
        commit_hash = m.group(1) if m else ""
        return ToolResult.ok(
            stdout=out.stdout.strip(),
            stderr=out.stderr.strip(),
            exit_code=0,
            message=f"Successfully committed changes: {commit_hash}" if commit_hash
            else "Successfully committed changes",
            commit_hash=commit_hash,
            commit_message=message,
        )
