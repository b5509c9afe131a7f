"""Reduction of one assistant stream into the transcript entry to persist.

The reducer collects the text classified as real output, the tool
invocations tracked by the correlator and any chart artifacts. ``flush``
hands the result to the transcript store once the stream has completed.
Store failures are logged and never propagate: the client response is
already closed by then.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from chassist.schemas.transcript import MessageRole, TranscriptEntry
from chassist.stream.correlator import ToolCorrelator

logger = logging.getLogger(__name__)


class TranscriptStore(Protocol):
    """Persistence collaborator for completed assistant turns."""

    async def add_message(
        self,
        thread_id: str,
        role: MessageRole | str,
        content: str,
        tool_calls: list[dict[str, Any]] | None = None,
        chart_specs: list[Any] | None = None,
    ) -> Any: ...

    async def update_thread_title(self, thread_id: str, user_id: str, title: str) -> None: ...


@dataclass
class TurnContext:
    """The request a stream answers: which thread, whose, and what was asked."""

    thread_id: str
    user_id: str
    user_message: str
    thread_title: str | None = None


def make_thread_title(message: str, max_chars: int = 80) -> str:
    """Derive a thread title from the user's first message."""
    if len(message) <= max_chars:
        return message
    return message[:max_chars] + "..."


class TranscriptReducer:
    """Accumulates the assistant transcript of one stream."""

    def __init__(self, correlator: ToolCorrelator) -> None:
        self._correlator = correlator
        self._parts: list[str] = []
        self._chart_specs: list[Any] = []

    @property
    def content(self) -> str:
        """All real assistant text so far, in emission order."""
        return "".join(self._parts)

    @property
    def chart_specs(self) -> list[Any]:
        return list(self._chart_specs)

    def append_text(self, text: str) -> None:
        self._parts.append(text)

    def record_chart(self, chart_spec: Any) -> None:
        self._chart_specs.append(chart_spec)

    def build(self) -> TranscriptEntry | None:
        """Return the transcript entry, or None when there is no real text."""
        content = self.content
        if not content.strip():
            return None
        invocations = self._correlator.invocations
        return TranscriptEntry(
            content=content,
            tool_calls=invocations or None,
            chart_specs=self.chart_specs or None,
        )

    async def flush(
        self,
        store: TranscriptStore,
        turn: TurnContext,
        *,
        title_max_chars: int = 80,
    ) -> TranscriptEntry | None:
        """Persist the transcript and auto-title an untitled thread.

        Best-effort: each store call is attempted once, and failures are
        logged and swallowed. Nothing is written when the turn produced
        no real text.
        """
        entry = self.build()
        if entry is None:
            logger.debug("No assistant text for thread %s, nothing to save", turn.thread_id)
            return None

        tool_calls = (
            [inv.to_record() for inv in entry.tool_calls] if entry.tool_calls else None
        )
        try:
            await store.add_message(
                turn.thread_id,
                MessageRole.ASSISTANT,
                entry.content,
                tool_calls,
                entry.chart_specs,
            )
        except Exception:
            logger.exception("Failed to save assistant message for thread %s", turn.thread_id)

        if not turn.thread_title:
            title = make_thread_title(turn.user_message, title_max_chars)
            try:
                await store.update_thread_title(turn.thread_id, turn.user_id, title)
            except Exception:
                logger.exception("Failed to auto-title thread %s", turn.thread_id)

        return entry
