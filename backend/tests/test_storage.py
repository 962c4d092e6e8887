"""Unit tests for the SQLite storage implementation."""
from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from src.coding_agent.db import SQLiteStorage


class TestSQLiteStorage(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.storage = SQLiteStorage(Path(self._tmp.name) / "agent.db")

    def tearDown(self) -> None:
        self.storage.close()
        self._tmp.cleanup()

    async def test_session_lifecycle(self) -> None:
        session = await self.storage.create_session(
            user_id="u1", project_path="/proj", model_provider="anthropic"
        )
        self.assertEqual(session.status, "active")

        updated = await self.storage.update_session(session.id, status="completed", bogus="x")
        self.assertIsNotNone(updated)
        self.assertEqual(updated.status, "completed")
        self.assertEqual(updated.project_path, "/proj")

        fetched = await self.storage.get_session(session.id)
        self.assertEqual(fetched.status, "completed")

    async def test_update_unknown_session(self) -> None:
        self.assertIsNone(await self.storage.update_session("missing", status="error"))
        self.assertIsNone(await self.storage.get_session("missing"))

    async def test_sessions_newest_first(self) -> None:
        first = await self.storage.create_session()
        second = await self.storage.create_session()
        ids = [s.id for s in await self.storage.get_all_sessions()]
        self.assertEqual(ids, [second.id, first.id])

    async def test_messages_in_order(self) -> None:
        session = await self.storage.create_session()
        for i in range(5):
            await self.storage.add_message(session.id, "user" if i % 2 == 0 else "assistant", f"m{i}")
        messages = await self.storage.get_messages(session.id)
        self.assertEqual([m.content for m in messages], ["m0", "m1", "m2", "m3", "m4"])
        self.assertEqual(await self.storage.get_messages("other"), [])

    async def test_tool_executions_round_trip_json(self) -> None:
        session = await self.storage.create_session()
        await self.storage.log_tool_execution(
            session.id,
            "read_file",
            {"file_path": "a.py"},
            {"success": False, "error": "missing", "_executionTime": 3},
            3,
            False,
        )
        [record] = await self.storage.get_tool_executions(session.id)
        self.assertEqual(record.tool_name, "read_file")
        self.assertEqual(record.input, {"file_path": "a.py"})
        self.assertEqual(record.output["error"], "missing")
        self.assertFalse(record.success)
        self.assertEqual(record.duration, 3)


if __name__ == "__main__":
    unittest.main()
