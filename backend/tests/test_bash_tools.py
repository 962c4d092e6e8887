"""Unit tests for command safety, the bash tool and package installers."""
from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from src.coding_agent.executor import ToolExecutor
from src.coding_agent.models import ToolResult
from src.coding_agent.tools.safety import CommandRejectedError, check_command
from src.coding_agent.tools.shell import OutputLimitError, run_process


class TestCheckCommand(unittest.TestCase):
    def test_allowed_commands(self) -> None:
        for cmd in ("ls -la", "npm test", "python3 -m pytest", "/usr/bin/git status", "python3.12 x.py"):
            with self.subTest(cmd=cmd):
                check_command(cmd)

    def test_dangerous_wins_over_allow_list(self) -> None:
        with self.assertRaises(CommandRejectedError) as ctx:
            check_command("ls && rm -rf /")
        self.assertEqual(str(ctx.exception), "Dangerous command blocked: rm -rf")
        with self.assertRaises(CommandRejectedError) as ctx:
            check_command("git status; sudo reboot")
        self.assertTrue(str(ctx.exception).startswith("Dangerous command blocked"))

    def test_not_whitelisted(self) -> None:
        with self.assertRaises(CommandRejectedError) as ctx:
            check_command("bash -c 'echo hi'")
        self.assertEqual(str(ctx.exception), "Command not in whitelist: bash")

    def test_blocked_words_after_newlines_and_wrappers(self) -> None:
        cases = {
            "echo hi\ndd if=/dev/zero of=x bs=1 count=4": "dd",
            "ls\nhalt": "halt",
            "ls\r\nsu root": "su",
            "echo hi\ninit 0": "init",
            "find . | xargs dd if=/dev/zero": "dd",
            "ls; env FOO=1 halt": "halt",
            "ls && nohup dd if=a of=b": "dd",
            "ls && timeout 5 su root": "su",
            "echo $(/sbin/halt)": "halt",
        }
        for cmd, label in cases.items():
            with self.subTest(cmd=cmd):
                with self.assertRaises(CommandRejectedError) as ctx:
                    check_command(cmd)
                self.assertEqual(str(ctx.exception), f"Dangerous command blocked: {label}")

    def test_word_matching_avoids_false_positives(self) -> None:
        check_command("git add -A")
        check_command("git init")
        check_command("grep -r todo . 2>/dev/null")

    def test_empty_command(self) -> None:
        with self.assertRaises(CommandRejectedError):
            check_command("   ")


class TestBashCommand(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.executor = ToolExecutor(project_root=self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_dangerous_command_never_spawns(self) -> None:
        with patch("asyncio.create_subprocess_shell", new_callable=AsyncMock) as spawn:
            result = await self.executor.execute("bash_command", {"command": "rm -rf /"})
        spawn.assert_not_called()
        self.assertFalse(result.success)
        self.assertTrue(result.error.startswith("Dangerous command blocked"))
        self.assertEqual(result.data["exit_code"], 1)
        self.assertEqual(result.data["stdout"], "")

    async def test_unlisted_command_never_spawns(self) -> None:
        with patch("asyncio.create_subprocess_shell", new_callable=AsyncMock) as spawn:
            result = await self.executor.execute("bash_command", {"command": "perl -e 1"})
        spawn.assert_not_called()
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Command not in whitelist: perl")

    async def test_runs_in_project_root(self) -> None:
        (self.root / "marker.txt").write_text("")
        result = await self.executor.execute("bash_command", {"command": "ls"})
        self.assertTrue(result.success, result.error)
        self.assertIn("marker.txt", result.data["stdout"])
        self.assertEqual(result.data["exit_code"], 0)

    async def test_non_zero_exit_is_failure(self) -> None:
        result = await self.executor.execute("bash_command", {"command": "ls does-not-exist"})
        self.assertFalse(result.success)
        self.assertNotEqual(result.data["exit_code"], 0)
        self.assertTrue(result.data["stderr"])

    async def test_output_overflow_kills_process(self) -> None:
        script = "import sys\nwhile True:\n    sys.stdout.write('y' * 4096)\n"
        with self.assertRaises(OutputLimitError) as ctx:
            await run_process(
                [sys.executable, "-c", script], cwd=self.root, timeout_ms=10_000, max_output_bytes=1000
            )
        self.assertEqual(str(ctx.exception), "Output exceeded 1000 bytes")

    async def test_output_overflow_is_failure_result(self) -> None:
        overflow = AsyncMock(side_effect=OutputLimitError("Output exceeded 1000 bytes"))
        with patch("src.coding_agent.tools.bash_tools.run_process", overflow):
            result = await self.executor.execute("bash_command", {"command": "cat big.log"})
        self.assertFalse(result.success)
        self.assertTrue(result.error.startswith("Output exceeded"))
        self.assertEqual(result.data["exit_code"], 1)
        self.assertEqual(result.data["stdout"], "")

    async def test_timeout_is_failure(self) -> None:
        result = await self.executor.execute(
            "bash_command",
            {"command": "python3 -c 'import time; time.sleep(5)'", "timeout_ms": 200},
        )
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Command timed out after 200ms")


class TestInstallers(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.executor = ToolExecutor(project_root=Path(self._tmp.name))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_empty_package_list(self) -> None:
        for tool in ("install_npm_package", "install_pip_package"):
            with self.subTest(tool=tool):
                result = await self.executor.execute(tool, {"packages": []})
                self.assertFalse(result.success)
                self.assertEqual(result.error, "No packages specified")

    async def test_npm_command_is_quoted(self) -> None:
        fake = AsyncMock(return_value=ToolResult.ok(stdout="added 1", stderr="", exit_code=0))
        with patch("src.coding_agent.tools.bash_tools.run_checked", fake):
            result = await self.executor.execute(
                "install_npm_package", {"packages": ["left-pad", "x; ls"], "dev": True}
            )
        command = fake.await_args.args[1]
        self.assertEqual(command, "npm install --save-dev left-pad 'x; ls'")
        self.assertEqual(fake.await_args.args[2], 120_000)
        self.assertTrue(result.success)
        self.assertEqual(result.data["message"], "Successfully installed: left-pad x; ls")
        self.assertTrue(result.data["dev"])

    async def test_pip_failure_message(self) -> None:
        fake = AsyncMock(return_value=ToolResult.fail("Command failed with exit code 1", exit_code=1))
        with patch("src.coding_agent.tools.bash_tools.run_checked", fake):
            result = await self.executor.execute("install_pip_package", {"packages": ["requests"]})
        self.assertEqual(fake.await_args.args[1], "pip install requests")
        self.assertFalse(result.success)
        self.assertEqual(result.data["message"], "Failed to install: requests")
        self.assertEqual(result.data["packages"], ["requests"])


if __name__ == "__main__":
    unittest.main()
