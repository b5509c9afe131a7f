"""Assistant response stream: generation events in, client frames out.

``AssistantStream`` iterates the upstream generation events once, feeds
them through the step classifier and yields outbound frames in order. On
normal completion it schedules persistence of the transcript as a
post-completion task and yields ``done``.

Persistence contract: the task runs at most once, only once the upstream
is exhausted. Store errors are logged, never retried and never reach the
client. A stream that is cancelled before ``done`` (client disconnect) or
whose upstream raises persists nothing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator

from chassist.schemas.events import GenerationEvent
from chassist.schemas.frames import DoneFrame, ErrorFrame, OutboundFrame
from chassist.schemas.transcript import TranscriptEntry
from chassist.stream.classifier import PipelineState, StepClassifier
from chassist.stream.encoder import encode_sse, error_message
from chassist.stream.reducer import TranscriptStore, TurnContext

logger = logging.getLogger(__name__)

# Strong references to in-flight persistence tasks; the event loop only
# keeps weak ones.
_background_tasks: set[asyncio.Task] = set()


class AssistantStream:
    """One request's pass over the generation event stream."""

    def __init__(
        self,
        events: AsyncIterable[GenerationEvent],
        turn: TurnContext,
        store: TranscriptStore | None = None,
        *,
        chart_tool: str = "render_chart",
        title_max_chars: int = 80,
    ) -> None:
        self._events = events
        self._turn = turn
        self._store = store
        self._title_max_chars = title_max_chars
        self.state = PipelineState()
        self._classifier = StepClassifier(self.state, chart_tool=chart_tool)
        self.completed = False
        self.persistence_task: asyncio.Task[TranscriptEntry | None] | None = None

    @property
    def transcript(self) -> TranscriptEntry | None:
        """The transcript accumulated so far (None while there is no text)."""
        return self._classifier.transcript.build()

    async def frames(self) -> AsyncIterator[OutboundFrame]:
        """Yield outbound frames for the whole upstream stream.

        Closing this generator early (client disconnect) closes the
        upstream iterator as well.
        """
        upstream = aiter(self._events)
        try:
            async for event in upstream:
                for frame in self._classifier.feed(event):
                    yield frame
        except Exception as exc:
            logger.exception("Assistant stream failed for thread %s", self._turn.thread_id)
            yield ErrorFrame(error=error_message(exc))
            return
        finally:
            aclose = getattr(upstream, "aclose", None)
            if aclose is not None:
                await aclose()

        # Must not depend on the consumer reading past done
        self.completed = True
        self._schedule_persistence()
        yield DoneFrame()

    async def sse(self) -> AsyncIterator[str]:
        """Yield frames encoded as server-sent event records."""
        async for frame in self.frames():
            yield encode_sse(frame)

    async def wait_for_persistence(self) -> TranscriptEntry | None:
        """Wait for the post-completion task, if one was scheduled."""
        if self.persistence_task is None:
            return None
        return await self.persistence_task

    def _schedule_persistence(self) -> None:
        if self._store is None:
            return
        task = asyncio.create_task(
            self._classifier.transcript.flush(
                self._store, self._turn, title_max_chars=self._title_max_chars,
            )
        )
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        self.persistence_task = task
