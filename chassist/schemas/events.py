"""Generation event schemas consumed by the response-stream pipeline.

The model-invocation engine produces an ordered sequence of these events.
Events belonging to one step are contiguous and every ``start-step`` is
closed by a ``finish-step``. Kinds the pipeline does not act on (reasoning
deltas, anything newer) are carried as ``IgnoredEvent`` so they can be
matched explicitly and dropped.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class GenerationEventKind(StrEnum):
    """Discriminator values for GenerationEvent."""

    START_STEP = "start-step"
    TEXT_DELTA = "text-delta"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    FINISH_STEP = "finish-step"
    ERROR = "error"
    REASONING_DELTA = "reasoning-delta"


class StartStep(BaseModel):
    """Opens a new generation step."""

    kind: Literal["start-step"] = "start-step"


class TextDelta(BaseModel):
    """Incremental text produced by the model."""

    kind: Literal["text-delta"] = "text-delta"
    text: str = Field(description="New text in this delta")


class ToolCall(BaseModel):
    """The model asked for a tool to be executed."""

    kind: Literal["tool-call"] = "tool-call"
    tool_name: str = Field(description="Name of the requested tool")
    raw_input: Any = Field(
        default=None,
        description="Tool arguments as produced by the model (JSON string or mapping)",
    )


class ToolResult(BaseModel):
    """The result of a previously requested tool call."""

    kind: Literal["tool-result"] = "tool-result"
    tool_name: str = Field(description="Name of the tool that produced the result")
    raw_output: Any = Field(default=None, description="Raw tool output value")


class FinishStep(BaseModel):
    """Closes the step opened by the preceding StartStep."""

    kind: Literal["finish-step"] = "finish-step"
    finish_reason: str = Field(
        default="stop",
        description="Why the step ended: 'stop', 'tool-calls', 'length', ...",
    )


class ErrorEvent(BaseModel):
    """An error reported in-band by the engine."""

    kind: Literal["error"] = "error"
    error: Any = Field(description="Error value or message")


class IgnoredEvent(BaseModel):
    """An event kind the pipeline does not act on (e.g. reasoning deltas)."""

    kind: Literal["reasoning-delta", "ignored"] = "ignored"
    source_kind: str = Field(default="", description="Original event kind")
    text: str = Field(default="", description="Payload text, if any")


GenerationEvent = Annotated[
    Union[
        StartStep,
        TextDelta,
        ToolCall,
        ToolResult,
        FinishStep,
        ErrorEvent,
        IgnoredEvent,
    ],
    Field(discriminator="kind"),
]

_event_adapter: TypeAdapter[GenerationEvent] = TypeAdapter(GenerationEvent)

_KNOWN_KINDS = {kind.value for kind in GenerationEventKind} | {"ignored"}


def parse_generation_event(data: dict[str, Any]) -> GenerationEvent:
    """Validate a raw mapping into a GenerationEvent.

    Unknown ``kind`` values become an IgnoredEvent rather than a
    validation error, so recordings from newer engines still replay.

    Raises:
        pydantic.ValidationError: If a known kind is missing required fields.
    """
    kind = str(data.get("kind", ""))
    if kind not in _KNOWN_KINDS:
        return IgnoredEvent(source_kind=kind, text=str(data.get("text", "")))
    return _event_adapter.validate_python(data)


__all__ = [
    "ErrorEvent",
    "FinishStep",
    "GenerationEvent",
    "GenerationEventKind",
    "IgnoredEvent",
    "StartStep",
    "TextDelta",
    "ToolCall",
    "ToolResult",
    "parse_generation_event",
]
