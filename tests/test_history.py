"""Tests for the chat history store.

Covers database initialization, thread CRUD scoped by user, message
storage with tool calls and chart specs, and retention cleanup.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from chassist.persistence.database import close_db, init_db
from chassist.persistence.history import ChatHistoryStore
from chassist.schemas.transcript import MessageRole


def _days_ago(days: int) -> str:
    return (datetime.now(UTC) - timedelta(days=days)).isoformat()


async def _age_thread(db, thread_id: str, days: int) -> None:
    await db.execute(
        "UPDATE chat_threads SET updated_at = ? WHERE id = ?",
        (_days_ago(days), thread_id),
    )
    await db.commit()


# ── Database Initialization Tests ─────────────────────────────────


@pytest.mark.asyncio
async def test_init_db_creates_tables(tmp_path):
    """init_db creates the thread and message tables."""
    db = await init_db(str(tmp_path / "chat.db"))

    async with db.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ) as cursor:
        tables = [row[0] for row in await cursor.fetchall()]

    assert "chat_threads" in tables
    assert "chat_messages" in tables
    await close_db(db)


@pytest.mark.asyncio
async def test_init_db_wal_and_foreign_keys(tmp_path):
    """init_db enables WAL journal mode and foreign keys."""
    db = await init_db(str(tmp_path / "chat.db"))

    async with db.execute("PRAGMA journal_mode") as cursor:
        assert (await cursor.fetchone())[0] == "wal"
    async with db.execute("PRAGMA foreign_keys") as cursor:
        assert (await cursor.fetchone())[0] == 1

    await close_db(db)


@pytest.mark.asyncio
async def test_init_db_creates_parent_dirs(tmp_path):
    """init_db creates missing parent directories."""
    db = await init_db(str(tmp_path / "nested" / "deep" / "chat.db"))
    assert (tmp_path / "nested" / "deep").is_dir()
    await close_db(db)


@pytest.mark.asyncio
async def test_init_db_in_memory():
    """init_db accepts :memory: without touching the filesystem."""
    db = await init_db(":memory:")
    store = ChatHistoryStore(db)
    thread = await store.create_thread("alice")
    assert await store.get_thread(thread.id, "alice") is not None
    await close_db(db)


# ── Threads ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_and_get_thread(tmp_path):
    """A created thread is returned to its owner only."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)

    thread = await store.create_thread("alice", "Sales questions", "conn-1")
    loaded = await store.get_thread(thread.id, "alice")

    assert loaded is not None
    assert loaded.title == "Sales questions"
    assert loaded.connection_id == "conn-1"
    assert await store.get_thread(thread.id, "bob") is None
    await close_db(db)


@pytest.mark.asyncio
async def test_create_thread_untitled(tmp_path):
    """Empty titles are stored as NULL so the thread can be auto-titled."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)

    thread = await store.create_thread("alice", "")
    loaded = await store.get_thread(thread.id, "alice")
    assert loaded.title is None
    await close_db(db)


@pytest.mark.asyncio
async def test_list_threads_scoped_and_ordered(tmp_path):
    """list_threads returns the user's threads, most recently updated first."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)

    older = await store.create_thread("alice", "older")
    newer = await store.create_thread("alice", "newer")
    await store.create_thread("bob", "not yours")
    await _age_thread(db, older.id, 1)

    threads = await store.list_threads("alice")
    assert [t.id for t in threads] == [newer.id, older.id]
    await close_db(db)


@pytest.mark.asyncio
async def test_list_threads_window_and_limit(tmp_path):
    """Threads outside the day window are hidden; limit caps the result."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)

    stale = await store.create_thread("alice", "stale")
    for i in range(3):
        await store.create_thread("alice", f"t{i}")
    await _age_thread(db, stale.id, 10)

    assert stale.id not in [t.id for t in await store.list_threads("alice", days_back=7)]
    assert len(await store.list_threads("alice", days_back=30)) == 4
    assert len(await store.list_threads("alice", limit=2)) == 2
    await close_db(db)


@pytest.mark.asyncio
async def test_list_threads_connection_filter(tmp_path):
    """connection_id filters by connection; None selects unbound threads."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)

    bound = await store.create_thread("alice", "a", "conn-1")
    unbound = await store.create_thread("alice", "b")

    assert [t.id for t in await store.list_threads("alice", connection_id="conn-1")] == [bound.id]
    assert [t.id for t in await store.list_threads("alice", connection_id=None)] == [unbound.id]
    assert len(await store.list_threads("alice")) == 2
    await close_db(db)


@pytest.mark.asyncio
async def test_update_thread_title_requires_owner(tmp_path):
    """Only the owner can rename a thread."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)
    thread = await store.create_thread("alice")

    await store.update_thread_title(thread.id, "bob", "hijacked")
    assert (await store.get_thread(thread.id, "alice")).title is None

    await store.update_thread_title(thread.id, "alice", "Renamed")
    assert (await store.get_thread(thread.id, "alice")).title == "Renamed"
    await close_db(db)


@pytest.mark.asyncio
async def test_delete_thread_cascades(tmp_path):
    """Deleting a thread removes its messages."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)
    thread = await store.create_thread("alice")
    await store.add_message(thread.id, MessageRole.USER, "hi")

    assert await store.delete_thread(thread.id, "bob") is False
    assert await store.delete_thread(thread.id, "alice") is True
    assert await store.get_messages(thread.id) == []
    assert await store.delete_thread(thread.id, "alice") is False
    await close_db(db)


# ── Messages ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_add_and_get_messages(tmp_path):
    """Messages round-trip with tool calls and chart specs, in order."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)
    thread = await store.create_thread("alice")

    await store.add_message(thread.id, "user", "Show me sales")
    await store.add_message(
        thread.id,
        MessageRole.ASSISTANT,
        "Here you go.",
        tool_calls=[{"name": "q", "args": {"sql": "SELECT 1"}, "result": [{"n": 1}]}],
        chart_specs=[{"mark": "bar"}],
    )

    messages = await store.get_messages(thread.id)
    assert [m.role for m in messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert messages[0].tool_calls is None
    assert messages[0].chart_specs is None
    assert messages[1].tool_calls[0]["args"] == {"sql": "SELECT 1"}
    assert messages[1].chart_specs == [{"mark": "bar"}]
    await close_db(db)


@pytest.mark.asyncio
async def test_add_message_bumps_thread(tmp_path):
    """Adding a message refreshes the thread's updated_at."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)
    thread = await store.create_thread("alice")
    await _age_thread(db, thread.id, 30)

    await store.add_message(thread.id, MessageRole.USER, "still here")
    assert [t.id for t in await store.list_threads("alice")] == [thread.id]
    await close_db(db)


@pytest.mark.asyncio
async def test_add_message_rejects_unknown_role(tmp_path):
    """Roles outside user/assistant are rejected."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)
    thread = await store.create_thread("alice")

    with pytest.raises(ValueError):
        await store.add_message(thread.id, "system", "nope")
    await close_db(db)


# ── Retention ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_cleanup_old_threads(tmp_path):
    """Threads idle beyond the retention window are removed."""
    db = await init_db(str(tmp_path / "chat.db"))
    store = ChatHistoryStore(db)
    old = await store.create_thread("alice", "old")
    fresh = await store.create_thread("alice", "fresh")
    await store.add_message(old.id, MessageRole.USER, "hello")
    await _age_thread(db, old.id, 8)

    assert await store.cleanup_old_threads(7) == 1
    assert await store.get_thread(old.id, "alice") is None
    assert await store.get_thread(fresh.id, "alice") is not None
    assert await store.cleanup_old_threads(7) == 0
    await close_db(db)
