"""Path and command safety checks applied before any tool touches the system."""

from __future__ import annotations

import re
from pathlib import Path


class PathAccessError(ValueError):
    """A path argument resolves outside the project root."""


class CommandRejectedError(ValueError):
    """A shell command is deny-listed or its executable is not allow-listed."""


ACCESS_DENIED = "Access denied: Path outside project directory"


def resolve_project_path(root: Path, path: str | None) -> Path:
    """Resolve `path` against `root` and refuse anything that escapes it."""
    try:
        candidate = (root / (path or ".")).resolve()
    except (OSError, ValueError) as e:
        raise PathAccessError(f"Invalid path: {e}") from e
    if candidate != root and root not in candidate.parents:
        raise PathAccessError(ACCESS_DENIED)
    return candidate


# Start of a shell word. Covers every command position: new lines, separators,
# and arguments to exec-style wrappers such as xargs, env, nohup or timeout.
_WORD = r"(?:^|[\s;&|(`$/'\"])"

# (label, pattern) on the lower-cased command. Checked before the allow-list.
DANGEROUS_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("rm -rf", re.compile(r"\brm\s+-[a-z]*r[a-z]*f")),
    ("rm -fr", re.compile(r"\brm\s+-[a-z]*f[a-z]*r")),
    ("dd", re.compile(_WORD + r"dd\s")),
    ("mkfs", re.compile(r"\bmkfs\b")),
    ("format", re.compile(_WORD + r"format\b")),
    ("> /dev/", re.compile(r">\s*/dev/(?!null\b)")),
    ("chmod 777", re.compile(r"\bchmod\s+(?:-[a-z]+\s+)*0?777\b")),
    ("chown", re.compile(r"\bchown\b")),
    ("sudo", re.compile(r"\bsudo\b")),
    ("su", re.compile(_WORD + r"su\b")),
    ("shutdown", re.compile(r"\bshutdown\b")),
    ("reboot", re.compile(r"\breboot\b")),
    ("init", re.compile(_WORD + r"init\s+[0-6s]\b")),
    ("halt", re.compile(_WORD + r"halt\b")),
    ("poweroff", re.compile(r"\bpoweroff\b")),
)

ALLOWED_COMMANDS = frozenset(
    {
        "npm", "npx", "yarn", "pnpm", "node",
        "python", "python3", "pip", "pip3", "pytest",
        "ls", "cat", "head", "tail", "wc", "grep", "find", "pwd", "echo", "diff",
        "git", "curl", "wget", "mkdir", "touch",
        "tsc", "tsx", "jest", "vitest", "eslint",
    }
)

_VERSIONED_INTERPRETER = re.compile(r"^(?:python|pip)\d+(?:\.\d+)?$")


def executable_name(command: str) -> str:
    """Base name of the first word of a command line."""
    parts = command.strip().split(maxsplit=1)
    if not parts:
        return ""
    return parts[0].strip("'\"").rsplit("/", 1)[-1].lower()


def check_command(command: str) -> str:
    """Raise CommandRejectedError unless `command` may run; returns the executable name."""
    lowered = command.lower().strip()
    if not lowered:
        raise CommandRejectedError("Command is empty")

    for label, pattern in DANGEROUS_PATTERNS:
        if pattern.search(lowered):
            raise CommandRejectedError(f"Dangerous command blocked: {label}")

    name = executable_name(lowered)
    if name not in ALLOWED_COMMANDS and not _VERSIONED_INTERPRETER.match(name):
        raise CommandRejectedError(f"Command not in whitelist: {name}")
    return name
