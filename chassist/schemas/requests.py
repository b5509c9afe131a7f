"""Request bodies accepted by the assistant HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StreamRequest(BaseModel):
    """Body of ``POST /ai-chat/stream``."""

    model_config = ConfigDict(populate_by_name=True)

    thread_id: str = Field(alias="threadId", min_length=1, description="Target thread")
    message: str = Field(min_length=1, description="The new user message")
    messages: list[dict[str, Any]] | None = Field(
        default=None, description="Optional client-side message history",
    )


class CreateThreadRequest(BaseModel):
    """Body of ``POST /ai-chat/threads``."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    connection_id: str | None = Field(default=None, alias="connectionId")


class UpdateThreadRequest(BaseModel):
    """Body of ``PATCH /ai-chat/threads/{id}``."""

    title: str = Field(min_length=1)
