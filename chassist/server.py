"""FastAPI application for the assistant chat API.

Serves the streaming chat endpoint and thread/message management. Caller
identity is taken from the ``X-User-ID`` header set by the authenticating
proxy in front of this service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from chassist import __version__
from chassist.persistence.database import close_db, init_db
from chassist.persistence.history import ANY_CONNECTION, ChatHistoryStore
from chassist.providers.base import GenerationEngine, ToolSpec
from chassist.providers.litellm_engine import LiteLLMEngine
from chassist.schemas.config import AssistantConfig
from chassist.schemas.requests import CreateThreadRequest, StreamRequest, UpdateThreadRequest
from chassist.schemas.transcript import MessageRole
from chassist.settings import load_assistant_config
from chassist.stream.pipeline import AssistantStream
from chassist.stream.reducer import TurnContext

logger = logging.getLogger(__name__)

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _get_store(request: Request) -> ChatHistoryStore:
    return request.app.state.store


def _current_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required. Please login.")
    return x_user_id


async def _cleanup_threads(store: ChatHistoryStore, days_to_keep: int) -> None:
    try:
        await store.cleanup_old_threads(days_to_keep)
    except Exception:
        logger.exception("Chat history cleanup failed")


async def build_history(
    store: ChatHistoryStore,
    thread_id: str,
    client_messages: list[dict[str, Any]] | None,
    limit: int,
) -> list[dict[str, Any]]:
    """Assemble the newest ``limit`` messages to send to the model.

    Client-supplied history (which may carry tool calls) wins over the
    stored history.
    """
    if client_messages:
        return client_messages[-limit:]
    stored = await store.get_messages(thread_id)
    return [{"role": m.role.value, "content": m.content} for m in stored[-limit:]]


def create_app(
    config: AssistantConfig | None = None,
    *,
    tools: list[ToolSpec] | None = None,
    engine: GenerationEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Assistant configuration; loaded from defaults when omitted.
        tools: Tools offered to the model when the default engine is used.
        engine: Generation engine override (defaults to LiteLLMEngine).
    """
    config = config or load_assistant_config()
    engine = engine or LiteLLMEngine(config, tools)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = await init_db(config.db_path)
        app.state.store = ChatHistoryStore(db)
        try:
            yield
        finally:
            await close_db(db)

    app = FastAPI(
        title="chassist",
        description="ClickHouse assistant chat API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    router = APIRouter(prefix="/ai-chat")

    # ── Status ───────────────────────────────────────────────────

    @router.get("/status")
    async def status() -> dict:
        """Report whether the assistant is configured."""
        return {"success": True, "data": {"enabled": config.enabled}}

    # ── Streaming chat ───────────────────────────────────────────

    @router.post("/stream")
    async def stream_chat(
        body: StreamRequest,
        user_id: str = Depends(_current_user),
        store: ChatHistoryStore = Depends(_get_store),
    ) -> StreamingResponse:
        """Stream an assistant response as server-sent events."""
        if not config.enabled:
            raise HTTPException(status_code=503, detail="AI chat is not configured")

        thread = await store.get_thread(body.thread_id, user_id)
        if thread is None:
            raise HTTPException(
                status_code=404, detail="Thread not found or does not belong to you.",
            )

        await store.add_message(thread.id, MessageRole.USER, body.message)
        history = await build_history(
            store, thread.id, body.messages, config.max_history_messages,
        )

        stream = AssistantStream(
            engine.stream(history),
            TurnContext(
                thread_id=thread.id,
                user_id=user_id,
                user_message=body.message,
                thread_title=thread.title,
            ),
            store,
            chart_tool=config.chart_tool,
            title_max_chars=config.title_max_chars,
        )
        return StreamingResponse(
            stream.sse(),
            media_type="text/event-stream",
            headers=_SSE_HEADERS,
            background=BackgroundTask(stream.wait_for_persistence),
        )

    # ── Threads ──────────────────────────────────────────────────

    @router.get("/threads")
    async def list_threads(
        background_tasks: BackgroundTasks,
        connectionId: str | None = None,  # noqa: N803
        user_id: str = Depends(_current_user),
        store: ChatHistoryStore = Depends(_get_store),
    ) -> dict:
        """List the caller's recent threads and sweep expired ones."""
        threads = await store.list_threads(
            user_id,
            days_back=config.retention_days,
            connection_id=connectionId if connectionId is not None else ANY_CONNECTION,
        )
        background_tasks.add_task(_cleanup_threads, store, config.retention_days)
        return {"success": True, "data": [t.model_dump(mode="json") for t in threads]}

    @router.post("/threads", status_code=201)
    async def create_thread(
        body: CreateThreadRequest,
        user_id: str = Depends(_current_user),
        store: ChatHistoryStore = Depends(_get_store),
    ) -> dict:
        thread = await store.create_thread(user_id, body.title, body.connection_id)
        return {"success": True, "data": thread.model_dump(mode="json")}

    @router.get("/threads/{thread_id}")
    async def get_thread(
        thread_id: str,
        user_id: str = Depends(_current_user),
        store: ChatHistoryStore = Depends(_get_store),
    ) -> dict:
        """Return a thread with all of its messages."""
        thread = await store.get_thread(thread_id, user_id)
        if thread is None:
            raise HTTPException(status_code=404, detail="Thread not found.")
        messages = await store.get_messages(thread_id)
        data = thread.model_dump(mode="json")
        data["messages"] = [m.model_dump(mode="json") for m in messages]
        return {"success": True, "data": data}

    @router.patch("/threads/{thread_id}")
    async def update_thread(
        thread_id: str,
        body: UpdateThreadRequest,
        user_id: str = Depends(_current_user),
        store: ChatHistoryStore = Depends(_get_store),
    ) -> dict:
        await store.update_thread_title(thread_id, user_id, body.title)
        return {"success": True}

    @router.delete("/threads/{thread_id}")
    async def delete_thread(
        thread_id: str,
        user_id: str = Depends(_current_user),
        store: ChatHistoryStore = Depends(_get_store),
    ) -> dict:
        deleted = await store.delete_thread(thread_id, user_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Thread not found.")
        return {"success": True}

    app.include_router(router)
    return app
