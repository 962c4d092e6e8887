"""SQLite implementation of the storage contract."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import AGENT_DB_PATH, ensure_dirs
from .models import MessageRecord, SessionRecord, ToolExecutionRecord
from .storage import Storage

_SESSION_COLUMNS = (
    "id, user_id, status, project_path, model_provider, model_name, created_at, updated_at"
)
_UPDATABLE = frozenset({"user_id", "status", "project_path", "model_provider", "model_name"})


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _session(row: tuple) -> SessionRecord:
    return SessionRecord(
        id=row[0],
        user_id=row[1],
        status=row[2],
        project_path=row[3],
        model_provider=row[4],
        model_name=row[5],
        created_at=row[6],
        updated_at=row[7],
    )


class SQLiteStorage(Storage):
    """One shared connection guarded by a lock; calls run in worker threads."""

    def __init__(self, db_path: Path | str = AGENT_DB_PATH) -> None:
        db_path = Path(db_path)
        self.db_path = str(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._create_schema()

    def _create_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    id             TEXT PRIMARY KEY,
                    user_id        TEXT,
                    status         TEXT NOT NULL DEFAULT 'active',
                    project_path   TEXT,
                    model_provider TEXT,
                    model_name     TEXT,
                    created_at     TEXT NOT NULL,
                    updated_at     TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id         TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    role       TEXT NOT NULL,
                    content    TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tool_executions (
                    id          TEXT PRIMARY KEY,
                    session_id  TEXT NOT NULL,
                    tool_name   TEXT NOT NULL,
                    input_json  TEXT NOT NULL,
                    output_json TEXT NOT NULL,
                    duration    INTEGER NOT NULL DEFAULT 0,
                    success     INTEGER NOT NULL,
                    created_at  TEXT NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_messages_session ON messages (session_id)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tool_executions_session ON tool_executions (session_id)"
            )
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Blocking helpers (run via asyncio.to_thread)
    # ------------------------------------------------------------------

    def _fetch_session(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?", (session_id,)
            ).fetchone()
        return _session(row) if row else None

    def _insert_session(self, record: SessionRecord) -> None:
        with self._lock:
            self._conn.execute(
                f"INSERT INTO sessions ({_SESSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.user_id,
                    record.status,
                    record.project_path,
                    record.model_provider,
                    record.model_name,
                    record.created_at,
                    record.updated_at,
                ),
            )
            self._conn.commit()

    def _list_sessions(self) -> list[SessionRecord]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sessions ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [_session(r) for r in rows]

    def _update_session(self, session_id: str, patch: dict[str, Any]) -> SessionRecord | None:
        fields = {k: v for k, v in patch.items() if k in _UPDATABLE}
        fields["updated_at"] = _iso_now()
        assignments = ", ".join(f"{k} = ?" for k in fields)
        with self._lock:
            cur = self._conn.execute(
                f"UPDATE sessions SET {assignments} WHERE id = ?",
                (*fields.values(), session_id),
            )
            self._conn.commit()
            if cur.rowcount == 0:
                return None
        return self._fetch_session(session_id)

    def _insert_message(self, record: MessageRecord) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO messages (id, session_id, role, content, created_at) VALUES (?, ?, ?, ?, ?)",
                (record.id, record.session_id, record.role, record.content, record.created_at),
            )
            self._conn.commit()

    def _list_messages(self, session_id: str) -> list[MessageRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, session_id, role, content, created_at FROM messages "
                "WHERE session_id = ? ORDER BY rowid",
                (session_id,),
            ).fetchall()
        return [
            MessageRecord(id=r[0], session_id=r[1], role=r[2], content=r[3], created_at=r[4])
            for r in rows
        ]

    def _insert_tool_execution(self, record: ToolExecutionRecord) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO tool_executions (
                    id, session_id, tool_name, input_json, output_json, duration, success, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.session_id,
                    record.tool_name,
                    json.dumps(record.input, default=str),
                    json.dumps(record.output, default=str),
                    record.duration,
                    1 if record.success else 0,
                    record.created_at,
                ),
            )
            self._conn.commit()

    def _list_tool_executions(self, session_id: str) -> list[ToolExecutionRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, session_id, tool_name, input_json, output_json, duration, success, created_at "
                "FROM tool_executions WHERE session_id = ? ORDER BY rowid",
                (session_id,),
            ).fetchall()
        return [
            ToolExecutionRecord(
                id=r[0],
                session_id=r[1],
                tool_name=r[2],
                input=json.loads(r[3]) if r[3] else {},
                output=json.loads(r[4]) if r[4] else {},
                duration=r[5],
                success=bool(r[6]),
                created_at=r[7],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Storage API
    # ------------------------------------------------------------------

    async def create_session(
        self,
        *,
        user_id: str | None = None,
        project_path: str | None = None,
        model_provider: str | None = None,
        model_name: str | None = None,
        status: str = "active",
    ) -> SessionRecord:
        now = _iso_now()
        record = SessionRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            status=status,
            project_path=project_path,
            model_provider=model_provider,
            model_name=model_name,
            created_at=now,
            updated_at=now,
        )
        await asyncio.to_thread(self._insert_session, record)
        return record

    async def get_session(self, session_id: str) -> SessionRecord | None:
        return await asyncio.to_thread(self._fetch_session, session_id)

    async def get_all_sessions(self) -> list[SessionRecord]:
        return await asyncio.to_thread(self._list_sessions)

    async def update_session(self, session_id: str, **patch: Any) -> SessionRecord | None:
        return await asyncio.to_thread(self._update_session, session_id, patch)

    async def add_message(self, session_id: str, role: str, content: str) -> MessageRecord:
        record = MessageRecord(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            content=content,
            created_at=_iso_now(),
        )
        await asyncio.to_thread(self._insert_message, record)
        return record

    async def get_messages(self, session_id: str) -> list[MessageRecord]:
        return await asyncio.to_thread(self._list_messages, session_id)

    async def log_tool_execution(
        self,
        session_id: str,
        tool_name: str,
        input: dict[str, Any],
        output: dict[str, Any],
        duration: int,
        success: bool,
    ) -> ToolExecutionRecord:
        record = ToolExecutionRecord(
            id=str(uuid.uuid4()),
            session_id=session_id,
            tool_name=tool_name,
            input=input,
            output=output,
            duration=duration,
            success=success,
            created_at=_iso_now(),
        )
        await asyncio.to_thread(self._insert_tool_execution, record)
        return record

    async def get_tool_executions(self, session_id: str) -> list[ToolExecutionRecord]:
        return await asyncio.to_thread(self._list_tool_executions, session_id)


_default_storage: SQLiteStorage | None = None


def get_storage() -> SQLiteStorage:
    """Process-wide storage on the configured database file, opened on first use."""
    global _default_storage
    if _default_storage is None:
        ensure_dirs()
        _default_storage = SQLiteStorage(AGENT_DB_PATH)
    return _default_storage
