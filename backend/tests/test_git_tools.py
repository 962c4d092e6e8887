"""Unit tests for git_status, git_diff and git_commit."""
from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from src.coding_agent.executor import ToolExecutor
from src.coding_agent.tools.git_tools import NOT_A_REPO, NOTHING_TO_COMMIT


class TestCommitValidation(unittest.IsolatedAsyncioTestCase):
    async def test_empty_message_never_invokes_git(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            executor = ToolExecutor(project_root=tmp)
            with patch("src.coding_agent.tools.git_tools.run_process", new_callable=AsyncMock) as run:
                result = await executor.execute("git_commit", {"message": ""})
            run.assert_not_called()
            self.assertFalse(result.success)
            self.assertEqual(result.error, "Commit message is required and cannot be empty")

    async def test_long_message_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            executor = ToolExecutor(project_root=tmp)
            with patch("src.coding_agent.tools.git_tools.run_process", new_callable=AsyncMock) as run:
                result = await executor.execute("git_commit", {"message": "x" * 501})
            run.assert_not_called()
            self.assertEqual(result.error, "Commit message must be 500 characters or less")


@unittest.skipUnless(shutil.which("git"), "git not installed")
class TestGitRepository(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.executor = ToolExecutor(project_root=self.root)
        # keep the user's global/system git config out of the test
        self._env = patch.dict(
            os.environ,
            {
                "GIT_CONFIG_GLOBAL": os.devnull,
                "GIT_CONFIG_NOSYSTEM": "1",
                "GIT_CEILING_DIRECTORIES": str(self.root.parent),
            },
        )
        self._env.start()

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp.cleanup()

    def git(self, *args: str) -> None:
        subprocess.run(["git", *args], cwd=self.root, check=True, capture_output=True)

    def init_repo(self) -> None:
        self.git("init")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")

    async def test_status_outside_repository(self) -> None:
        result = await self.executor.execute("git_status", {})
        self.assertFalse(result.success)
        self.assertEqual(result.error, NOT_A_REPO)
        self.assertTrue(result.data["is_not_git_repo"])

    async def test_status_and_diff(self) -> None:
        self.init_repo()
        (self.root / "a.txt").write_text("one\n")
        status = await self.executor.execute("git_status", {})
        self.assertTrue(status.success)
        self.assertTrue(status.data["has_changes"])
        self.assertIn("a.txt", status.data["stdout"])

        self.git("add", "a.txt")
        self.git("commit", "-m", "init")
        (self.root / "a.txt").write_text("two\n")
        diff = await self.executor.execute("git_diff", {"file_path": "a.txt"})
        self.assertTrue(diff.success)
        self.assertTrue(diff.data["has_diff"])
        self.assertIn("+two", diff.data["stdout"])

    async def test_commit_with_quotes_in_message(self) -> None:
        self.init_repo()
        (self.root / "a.txt").write_text("content\n")
        message = 'Add "a.txt" $(touch pwned) `x`'
        result = await self.executor.execute("git_commit", {"message": message})
        self.assertTrue(result.success, result.error)
        self.assertRegex(result.data["commit_hash"], r"^[a-f0-9]{7,}$")
        self.assertFalse((self.root / "pwned").exists())
        log = subprocess.run(
            ["git", "log", "-1", "--format=%s"], cwd=self.root, capture_output=True, text=True
        )
        self.assertEqual(log.stdout.strip(), message)

    async def test_nothing_to_commit(self) -> None:
        self.init_repo()
        (self.root / "a.txt").write_text("content\n")
        first = await self.executor.execute("git_commit", {"message": "first"})
        self.assertTrue(first.success, first.error)
        second = await self.executor.execute("git_commit", {"message": "again"})
        self.assertFalse(second.success)
        self.assertEqual(second.error, NOTHING_TO_COMMIT)


if __name__ == "__main__":
    unittest.main()
