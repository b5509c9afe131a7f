"""Transcript and chat history schemas.

Defines the ToolInvocation collected during a stream, the TranscriptEntry
persisted once the stream completes, and the ChatThread / ChatMessage
records served by the history store.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class MessageRole(StrEnum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ToolInvocation(BaseModel):
    """A tool call made during one assistant turn and its eventual result."""

    name: str = Field(description="Tool name")
    args: dict[str, Any] = Field(default_factory=dict, description="Parsed tool arguments")
    result: Any = Field(default=None, description="Tool result once matched")
    has_result: bool = Field(
        default=False, exclude=True, description="Whether a result was bound",
    )

    def bind_result(self, value: Any) -> None:
        """Attach a tool result to this invocation."""
        self.result = value
        self.has_result = True

    def to_record(self) -> dict[str, Any]:
        """Return the persisted shape: result omitted while unset."""
        record: dict[str, Any] = {"name": self.name, "args": self.args}
        if self.has_result:
            record["result"] = self.result
        return record


class TranscriptEntry(BaseModel):
    """The assistant message produced by one completed stream."""

    role: MessageRole = Field(default=MessageRole.ASSISTANT)
    content: str = Field(description="All text classified as real output")
    tool_calls: list[ToolInvocation] | None = Field(
        default=None, description="Tool invocations in call order (None if empty)",
    )
    chart_specs: list[Any] | None = Field(
        default=None, description="Successful chart results (None if empty)",
    )


class ChatThread(BaseModel):
    """A conversation thread owned by one user."""

    id: str
    user_id: str
    title: str | None = None
    connection_id: str | None = None
    created_at: datetime
    updated_at: datetime


class ChatMessage(BaseModel):
    """A single persisted message in a thread."""

    id: str
    thread_id: str
    role: MessageRole
    content: str
    tool_calls: list[dict[str, Any]] | None = None
    chart_specs: list[Any] | None = None
    created_at: datetime
