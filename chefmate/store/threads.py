"""
SQLite-backed conversation thread store.

Uses ``aiosqlite`` for async database access with a write lock to serialise
mutations (SQLite only supports one writer at a time in WAL mode).

Schema is version-tracked via a ``schema_version`` table.  Migrations are
applied automatically on ``init()``.

Only user and assistant messages are kept.  Tool traffic of a turn is
summarised into the assistant message's ``context`` column and never
replayed to the model.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from chefmate.llm.types import Message, Role
from chefmate.types import OrchestrationResult

DEFAULT_TITLE = "New Conversation"
TITLE_LENGTH = 50

# ---------------------------------------------------------------------------
# Schema management
# ---------------------------------------------------------------------------

SCHEMA_VERSION = 2

MIGRATIONS: dict[int, list[str]] = {
    1: [
        """CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER NOT NULL
        )""",
        """CREATE TABLE IF NOT EXISTS threads (
            thread_id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""",
        """CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            thread_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY (thread_id) REFERENCES threads(thread_id) ON DELETE CASCADE
        )""",
        """CREATE INDEX IF NOT EXISTS idx_messages_thread ON messages(thread_id)""",
    ],
    2: [
        """ALTER TABLE messages ADD COLUMN context TEXT NOT NULL DEFAULT '{}'""",
        """CREATE INDEX IF NOT EXISTS idx_threads_user ON threads(user_id)""",
    ],
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def title_from_message(message: str) -> str:
    text = " ".join(message.split())
    if len(text) <= TITLE_LENGTH:
        return text or DEFAULT_TITLE
    return text[:TITLE_LENGTH] + "..."


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class ThreadStore:
    """
    Async SQLite store for conversation threads and their messages.

    Usage::

        store = ThreadStore("~/.chefmate/threads.db")
        await store.init()
        tid = await store.create_thread("user-1")
        await store.record_exchange(tid, "user-1", "hi", result)
        history = await store.load_history(tid, 20)
        await store.close()
    """

    def __init__(self, db_path: str) -> None:
        if db_path == ":memory:":
            self.db_path = db_path
        else:
            path = Path(db_path).expanduser().resolve()
            path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = str(path)
        self._write_lock = asyncio.Lock()
        self._db: aiosqlite.Connection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Open the database and ensure the schema is up to date."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")
        await self._run_migrations()

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def schema_version(self) -> int:
        """Return the current schema version, or 0 if not initialised."""
        assert self._db is not None
        cursor = await self._db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if await cursor.fetchone() is None:
            return 0
        cursor = await self._db.execute("SELECT version FROM schema_version LIMIT 1")
        row = await cursor.fetchone()
        return int(row[0]) if row is not None else 0

    async def _run_migrations(self) -> None:
        assert self._db is not None
        current = await self.schema_version()
        if current >= SCHEMA_VERSION:
            return

        for version in range(current + 1, SCHEMA_VERSION + 1):
            stmts = MIGRATIONS.get(version)
            if stmts is None:
                raise RuntimeError(f"Missing migration for schema version {version}")
            for stmt in stmts:
                await self._db.execute(stmt)

        await self._db.execute("DELETE FROM schema_version")
        await self._db.execute(
            "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
        )
        await self._db.commit()

    # ------------------------------------------------------------------
    # Thread CRUD
    # ------------------------------------------------------------------

    async def create_thread(self, user_id: str, title: str = DEFAULT_TITLE) -> str:
        """Create a new thread and return its id."""
        assert self._db is not None
        thread_id = str(uuid.uuid4())
        now = _now()
        async with self._write_lock:
            await self._db.execute(
                "INSERT INTO threads (thread_id, user_id, title, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (thread_id, user_id, title, now, now),
            )
            await self._db.commit()
        return thread_id

    async def get_thread(self, thread_id: str) -> dict | None:
        assert self._db is not None
        cursor = await self._db.execute(
            "SELECT thread_id, user_id, title, created_at, updated_at "
            "FROM threads WHERE thread_id = ?",
            (thread_id,),
        )
        row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def list_threads(self, user_id: str | None = None) -> list[dict]:
        """Return threads, most recently updated first."""
        assert self._db is not None
        query = (
            "SELECT t.thread_id, t.user_id, t.title, t.created_at, t.updated_at, "
            "COUNT(m.id) AS message_count "
            "FROM threads t LEFT JOIN messages m ON m.thread_id = t.thread_id"
        )
        params: tuple = ()
        if user_id is not None:
            query += " WHERE t.user_id = ?"
            params = (user_id,)
        query += " GROUP BY t.thread_id ORDER BY t.updated_at DESC"
        cursor = await self._db.execute(query, params)
        return [dict(row) for row in await cursor.fetchall()]

    async def delete_thread(self, thread_id: str) -> bool:
        """Delete a thread and its messages.  Returns False if it did not exist."""
        assert self._db is not None
        async with self._write_lock:
            await self._db.execute("DELETE FROM messages WHERE thread_id = ?", (thread_id,))
            cursor = await self._db.execute(
                "DELETE FROM threads WHERE thread_id = ?", (thread_id,)
            )
            await self._db.commit()
        return cursor.rowcount > 0

    async def set_title(self, thread_id: str, title: str) -> None:
        assert self._db is not None
        async with self._write_lock:
            await self._db.execute(
                "UPDATE threads SET title = ?, updated_at = ? WHERE thread_id = ?",
                (title, _now(), thread_id),
            )
            await self._db.commit()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def append_message(
        self,
        thread_id: str,
        role: str,
        content: str,
        context: dict | None = None,
    ) -> None:
        assert self._db is not None
        if role not in (Role.USER, Role.ASSISTANT):
            raise ValueError(f"Only user and assistant messages are stored, got {role!r}")
        now = _now()
        async with self._write_lock:
            await self._db.execute(
                "INSERT INTO messages (thread_id, role, content, context, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (thread_id, role, content, json.dumps(context or {}, default=str), now),
            )
            await self._db.execute(
                "UPDATE threads SET updated_at = ? WHERE thread_id = ?", (now, thread_id)
            )
            await self._db.commit()

    async def get_messages(self, thread_id: str) -> list[dict]:
        """Return every stored message of a thread, oldest first, with context."""
        assert self._db is not None
        cursor = await self._db.execute(
            "SELECT role, content, context, created_at FROM messages "
            "WHERE thread_id = ? ORDER BY id",
            (thread_id,),
        )
        return [
            {
                "role": row["role"],
                "content": row["content"],
                "context": json.loads(row["context"]),
                "created_at": row["created_at"],
            }
            for row in await cursor.fetchall()
        ]

    async def load_history(self, thread_id: str, limit: int) -> list[Message]:
        """Return the last *limit* messages of a thread, oldest first."""
        assert self._db is not None
        if limit <= 0:
            return []
        cursor = await self._db.execute(
            "SELECT role, content FROM messages WHERE thread_id = ? ORDER BY id DESC LIMIT ?",
            (thread_id, limit),
        )
        rows = await cursor.fetchall()
        return [Message(role=row["role"], content=row["content"]) for row in reversed(rows)]

    async def record_exchange(
        self,
        thread_id: str,
        user_id: str,
        user_message: str,
        result: OrchestrationResult,
    ) -> None:
        """
        Persist one finished turn: the user's message and the final answer.

        Creates the thread if it does not exist yet and titles a thread still
        called ``DEFAULT_TITLE`` after the first user message.
        """
        thread = await self.get_thread(thread_id)
        if thread is None:
            assert self._db is not None
            now = _now()
            async with self._write_lock:
                await self._db.execute(
                    "INSERT INTO threads (thread_id, user_id, title, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (thread_id, user_id, DEFAULT_TITLE, now, now),
                )
                await self._db.commit()
            title = DEFAULT_TITLE
        else:
            title = thread["title"]

        await self.append_message(thread_id, Role.USER, user_message)
        context: dict = {}
        if result.tool_calls:
            context["toolCalls"] = [
                {"name": r.name, "args": r.arguments} for r in result.tool_calls
            ]
        if result.metadata:
            context["metadata"] = result.metadata
        await self.append_message(thread_id, Role.ASSISTANT, result.content, context)

        if title == DEFAULT_TITLE:
            await self.set_title(thread_id, title_from_message(user_message))
