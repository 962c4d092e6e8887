"""Subprocess runner with a wall-clock timeout and a bounded output buffer."""

from __future__ import annotations

import asyncio
import os
import signal
from dataclasses import dataclass
from pathlib import Path

from ..config import MAX_OUTPUT_BYTES

_READ_CHUNK = 64 * 1024


class CommandTimeoutError(Exception):
    """The process outlived its timeout and was killed."""


class OutputLimitError(Exception):
    """The process wrote more than the output limit to stdout or stderr."""


@dataclass
class ProcessOutput:
    stdout: str
    stderr: str
    exit_code: int


async def _read_bounded(stream: asyncio.StreamReader, limit: int) -> bytes:
    buf = bytearray()
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return bytes(buf)
        buf.extend(chunk)
        if len(buf) > limit:
            raise OutputLimitError(f"Output exceeded {limit} bytes")


async def _collect(proc: asyncio.subprocess.Process, limit: int) -> tuple[bytes, bytes]:
    stdout, stderr = await asyncio.gather(
        _read_bounded(proc.stdout, limit),
        _read_bounded(proc.stderr, limit),
    )
    await proc.wait()
    return stdout, stderr


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the whole process group so shell children die with the shell."""
    if proc.returncode is not None:
        return
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


async def run_process(
    command: str | list[str],
    *,
    cwd: Path,
    timeout_ms: int,
    max_output_bytes: int = MAX_OUTPUT_BYTES,
) -> ProcessOutput:
    """
    Run a shell command line (str) or an argument vector (list) in `cwd`.

    Raises CommandTimeoutError or OutputLimitError after killing the process;
    a non-zero exit code is returned, not raised.
    """
    if isinstance(command, str):
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    else:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )

    try:
        stdout, stderr = await asyncio.wait_for(
            _collect(proc, max_output_bytes), timeout=timeout_ms / 1000
        )
    except asyncio.TimeoutError:
        _kill(proc)
        await proc.wait()
        raise CommandTimeoutError(f"Command timed out after {timeout_ms}ms") from None
    except OutputLimitError:
        _kill(proc)
        await proc.wait()
        raise

    return ProcessOutput(
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        exit_code=proc.returncode if proc.returncode is not None else 1,
    )
