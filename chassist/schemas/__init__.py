"""Pydantic schemas for generation events, wire frames, transcripts and config."""

from chassist.schemas.config import AssistantConfig
from chassist.schemas.events import (
    ErrorEvent,
    FinishStep,
    GenerationEvent,
    GenerationEventKind,
    IgnoredEvent,
    StartStep,
    TextDelta,
    ToolCall,
    ToolResult,
    parse_generation_event,
)
from chassist.schemas.frames import (
    ChartDataFrame,
    DoneFrame,
    ErrorFrame,
    OutboundFrame,
    TextDeltaFrame,
    ToolCallFrame,
    ToolCompleteFrame,
)
from chassist.schemas.transcript import (
    ChatMessage,
    ChatThread,
    MessageRole,
    ToolInvocation,
    TranscriptEntry,
)

__all__ = [
    "AssistantConfig",
    "ChartDataFrame",
    "ChatMessage",
    "ChatThread",
    "DoneFrame",
    "ErrorEvent",
    "ErrorFrame",
    "FinishStep",
    "GenerationEvent",
    "GenerationEventKind",
    "IgnoredEvent",
    "MessageRole",
    "OutboundFrame",
    "StartStep",
    "TextDelta",
    "TextDeltaFrame",
    "ToolCall",
    "ToolCallFrame",
    "ToolCompleteFrame",
    "ToolInvocation",
    "ToolResult",
    "TranscriptEntry",
    "parse_generation_event",
]
