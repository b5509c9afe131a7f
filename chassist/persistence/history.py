"""Chat history store for threads and messages.

Provides the ChatHistoryStore class that wraps the SQLite tables with
Pydantic schema serialization/deserialization. It is also the transcript
store the response-stream pipeline writes completed turns to.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import aiosqlite

from chassist.schemas.transcript import ChatMessage, ChatThread, MessageRole

logger = logging.getLogger(__name__)

# Distinguishes "no connection filter" from "threads without a connection"
ANY_CONNECTION: Any = object()


def _now() -> datetime:
    return datetime.now(UTC)


def _dump_json(value: Any) -> str | None:
    return json.dumps(value, default=str) if value else None


class ChatHistoryStore:
    """Persistent chat history backed by SQLite.

    All methods are async and operate on an aiosqlite connection
    initialized by database.init_db().
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._db.row_factory = aiosqlite.Row

    # ── Threads ──────────────────────────────────────────────────

    async def create_thread(
        self,
        user_id: str,
        title: str | None = None,
        connection_id: str | None = None,
    ) -> ChatThread:
        """Create a new, possibly untitled thread for a user."""
        now = _now()
        thread = ChatThread(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title or None,
            connection_id=connection_id or None,
            created_at=now,
            updated_at=now,
        )
        await self._db.execute(
            """
            INSERT INTO chat_threads
                (id, user_id, title, connection_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                thread.id,
                thread.user_id,
                thread.title,
                thread.connection_id,
                now.isoformat(),
                now.isoformat(),
            ),
        )
        await self._db.commit()
        logger.info("Created chat thread %s for user %s", thread.id, user_id)
        return thread

    async def list_threads(
        self,
        user_id: str,
        days_back: int = 7,
        limit: int = 50,
        connection_id: Any = ANY_CONNECTION,
    ) -> list[ChatThread]:
        """List a user's recently updated threads, most recent first.

        ``connection_id=None`` selects threads not bound to a connection;
        leaving it unset applies no connection filter.
        """
        cutoff = _now() - timedelta(days=days_back)
        conditions = ["user_id = ?", "updated_at >= ?"]
        params: list[object] = [user_id, cutoff.isoformat()]

        if connection_id is None:
            conditions.append("connection_id IS NULL")
        elif connection_id is not ANY_CONNECTION:
            conditions.append("connection_id = ?")
            params.append(connection_id)

        sql = f"""
            SELECT * FROM chat_threads
            WHERE {' AND '.join(conditions)}
            ORDER BY updated_at DESC
            LIMIT ?
        """  # noqa: S608
        params.append(limit)

        threads: list[ChatThread] = []
        async with self._db.execute(sql, params) as cursor:
            async for row in cursor:
                threads.append(_row_to_thread(row))
        return threads

    async def get_thread(self, thread_id: str, user_id: str) -> ChatThread | None:
        """Return the thread if it exists and belongs to the user."""
        async with self._db.execute(
            "SELECT * FROM chat_threads WHERE id = ? AND user_id = ?",
            (thread_id, user_id),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_thread(row) if row else None

    async def update_thread_title(self, thread_id: str, user_id: str, title: str) -> None:
        await self._db.execute(
            "UPDATE chat_threads SET title = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (title, _now().isoformat(), thread_id, user_id),
        )
        await self._db.commit()

    async def delete_thread(self, thread_id: str, user_id: str) -> bool:
        """Delete a thread and its messages. Returns False if nothing matched."""
        cursor = await self._db.execute(
            "DELETE FROM chat_threads WHERE id = ? AND user_id = ?",
            (thread_id, user_id),
        )
        await self._db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted chat thread %s", thread_id)
        return deleted

    # ── Messages ─────────────────────────────────────────────────

    async def add_message(
        self,
        thread_id: str,
        role: MessageRole | str,
        content: str,
        tool_calls: list[dict[str, Any]] | None = None,
        chart_specs: list[Any] | None = None,
    ) -> ChatMessage:
        """Append a message to a thread and bump the thread's updated_at."""
        now = _now()
        message = ChatMessage(
            id=str(uuid.uuid4()),
            thread_id=thread_id,
            role=MessageRole(role),
            content=content,
            tool_calls=tool_calls or None,
            chart_specs=chart_specs or None,
            created_at=now,
        )
        await self._db.execute(
            """
            INSERT INTO chat_messages
                (id, thread_id, role, content, tool_calls_json,
                 chart_specs_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                message.id,
                thread_id,
                message.role.value,
                content,
                _dump_json(tool_calls),
                _dump_json(chart_specs),
                now.isoformat(),
            ),
        )
        await self._db.execute(
            "UPDATE chat_threads SET updated_at = ? WHERE id = ?",
            (now.isoformat(), thread_id),
        )
        await self._db.commit()
        return message

    async def get_messages(self, thread_id: str) -> list[ChatMessage]:
        """Return all messages of a thread in creation order."""
        messages: list[ChatMessage] = []
        async with self._db.execute(
            "SELECT * FROM chat_messages WHERE thread_id = ? ORDER BY created_at, rowid",
            (thread_id,),
        ) as cursor:
            async for row in cursor:
                messages.append(_row_to_message(row))
        return messages

    # ── Retention ────────────────────────────────────────────────

    async def cleanup_old_threads(self, days_to_keep: int = 7) -> int:
        """Delete threads not updated within ``days_to_keep`` days.

        Messages are removed by the cascade. Returns the number of threads
        deleted.
        """
        cutoff = _now() - timedelta(days=days_to_keep)
        cursor = await self._db.execute(
            "DELETE FROM chat_threads WHERE updated_at < ?",
            (cutoff.isoformat(),),
        )
        await self._db.commit()
        count = cursor.rowcount
        if count > 0:
            logger.info("Cleaned up %d chat threads older than %d days", count, days_to_keep)
        return count


def _row_to_thread(row: aiosqlite.Row) -> ChatThread:
    return ChatThread(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        connection_id=row["connection_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_message(row: aiosqlite.Row) -> ChatMessage:
    tool_calls = row["tool_calls_json"]
    chart_specs = row["chart_specs_json"]
    return ChatMessage(
        id=row["id"],
        thread_id=row["thread_id"],
        role=MessageRole(row["role"]),
        content=row["content"],
        tool_calls=json.loads(tool_calls) if tool_calls else None,
        chart_specs=json.loads(chart_specs) if chart_specs else None,
        created_at=datetime.fromisoformat(row["created_at"]),
    )
