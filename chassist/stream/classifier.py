"""Step classification state machine for the assistant response stream.

Text from a generation step is buffered until the step finishes. A step
that finishes with reason ``stop`` and made no tool calls is the final
answer: its buffer is cleaned of leaked scratchpad text and released, and
from then on every text delta streams straight through. Text from any
other step (tool-using, truncated) is presumed filler and discarded.

Tool activity is status information and is reported as it happens,
independent of step finality.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, assert_never

from chassist.schemas.events import (
    ErrorEvent,
    FinishStep,
    GenerationEvent,
    IgnoredEvent,
    StartStep,
    TextDelta,
    ToolCall,
    ToolResult,
)
from chassist.schemas.frames import (
    ErrorFrame,
    OutboundFrame,
    TextDeltaFrame,
    ToolCallFrame,
    ToolCompleteFrame,
)
from chassist.stream.correlator import ToolCorrelator
from chassist.stream.encoder import chart_frame, error_message
from chassist.stream.reducer import TranscriptReducer
from chassist.stream.scratchpad import strip_scratchpad
from chassist.stream.summarizer import summarize_result

logger = logging.getLogger(__name__)

FINAL_FINISH_REASON = "stop"


def _is_chart_artifact(result: Any) -> bool:
    """Any truthy chart tool result counts unless it reports an error."""
    if not result:
        return False
    return not (isinstance(result, Mapping) and result.get("error"))


class ClassifierState(StrEnum):
    """Whether step text is held back or passed through."""

    BUFFERING = "buffering"
    STREAMING = "streaming"


@dataclass
class StepBuffer:
    """Text and tool usage of the step currently being generated."""

    text: str = ""
    used_tools: bool = False

    def reset(self) -> None:
        self.text = ""
        self.used_tools = False


@dataclass
class PipelineState:
    """All mutable state of one stream, owned by the task serving it."""

    is_final_confirmed: bool = False
    step: StepBuffer = field(default_factory=StepBuffer)
    correlator: ToolCorrelator = field(default_factory=ToolCorrelator)
    transcript: TranscriptReducer = field(init=False)

    def __post_init__(self) -> None:
        self.transcript = TranscriptReducer(self.correlator)


class StepClassifier:
    """Consumes generation events in order and decides what the client sees.

    ``feed`` is synchronous: each call applies one event to the state and
    returns the frames it produced, in order.
    """

    def __init__(
        self,
        state: PipelineState | None = None,
        *,
        chart_tool: str = "render_chart",
    ) -> None:
        self.state = state or PipelineState()
        self._chart_tool = chart_tool

    @property
    def mode(self) -> ClassifierState:
        if self.state.is_final_confirmed:
            return ClassifierState.STREAMING
        return ClassifierState.BUFFERING

    @property
    def transcript(self) -> TranscriptReducer:
        return self.state.transcript

    def feed(self, event: GenerationEvent) -> list[OutboundFrame]:
        """Apply one generation event and return the frames to emit."""
        if isinstance(event, StartStep):
            self.state.step.reset()
            return []
        if isinstance(event, TextDelta):
            return self._on_text(event.text)
        if isinstance(event, ToolCall):
            return self._on_tool_call(event)
        if isinstance(event, ToolResult):
            return self._on_tool_result(event)
        if isinstance(event, FinishStep):
            return self._on_finish_step(event.finish_reason)
        if isinstance(event, ErrorEvent):
            message = error_message(event.error)
            logger.warning("Generation error: %s", message)
            return [ErrorFrame(error=message)]
        if isinstance(event, IgnoredEvent):
            return []
        assert_never(event)

    # ── Handlers ─────────────────────────────────────────────────

    def _on_text(self, text: str) -> list[OutboundFrame]:
        if self.state.is_final_confirmed:
            # Stripping needs a whole buffer; live deltas pass unmodified
            self.transcript.append_text(text)
            return [TextDeltaFrame(text=text)]
        self.state.step.text += text
        return []

    def _on_tool_call(self, event: ToolCall) -> list[OutboundFrame]:
        self.state.step.used_tools = True
        invocation = self.state.correlator.register_call(event.tool_name, event.raw_input)
        return [ToolCallFrame(tool=invocation.name, args=invocation.args)]

    def _on_tool_result(self, event: ToolResult) -> list[OutboundFrame]:
        result = event.raw_output
        self.state.correlator.resolve_result(event.tool_name, result)

        frames: list[OutboundFrame] = []
        if event.tool_name == self._chart_tool and _is_chart_artifact(result):
            frames.append(chart_frame(result))
            self.transcript.record_chart(result)

        frames.append(
            ToolCompleteFrame(tool=event.tool_name, summary=summarize_result(result))
        )
        return frames

    def _on_finish_step(self, finish_reason: str) -> list[OutboundFrame]:
        step = self.state.step
        frames: list[OutboundFrame] = []

        if finish_reason == FINAL_FINISH_REASON and not step.used_tools:
            if not self.state.is_final_confirmed:
                logger.debug("Final step confirmed, streaming subsequent text")
            self.state.is_final_confirmed = True
            cleaned = strip_scratchpad(step.text)
            if cleaned:
                self.transcript.append_text(cleaned)
                frames.append(TextDeltaFrame(text=cleaned))
        elif step.text:
            logger.debug(
                "Discarding %d chars of step text (finish=%s, used_tools=%s)",
                len(step.text), finish_reason, step.used_tools,
            )

        step.reset()
        return frames
