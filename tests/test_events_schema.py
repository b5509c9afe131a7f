"""Tests for generation event and transcript schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from chassist.schemas.events import (
    ErrorEvent,
    FinishStep,
    GenerationEventKind,
    IgnoredEvent,
    StartStep,
    TextDelta,
    ToolCall,
    ToolResult,
    parse_generation_event,
)
from chassist.schemas.requests import StreamRequest
from chassist.schemas.transcript import ToolInvocation

# ── parse_generation_event ────────────────────────────────────────


class TestParseGenerationEvent:
    @pytest.mark.parametrize(("data", "expected"), [
        ({"kind": "start-step"}, StartStep()),
        ({"kind": "text-delta", "text": "hi"}, TextDelta(text="hi")),
        (
            {"kind": "tool-call", "tool_name": "q", "raw_input": {"sql": "SELECT 1"}},
            ToolCall(tool_name="q", raw_input={"sql": "SELECT 1"}),
        ),
        (
            {"kind": "tool-result", "tool_name": "q", "raw_output": [1]},
            ToolResult(tool_name="q", raw_output=[1]),
        ),
        ({"kind": "finish-step"}, FinishStep(finish_reason="stop")),
        ({"kind": "error", "error": "boom"}, ErrorEvent(error="boom")),
    ])
    def test_known_kinds(self, data, expected):
        assert parse_generation_event(data) == expected

    def test_reasoning_delta(self):
        event = parse_generation_event({"kind": "reasoning-delta", "text": "hmm"})
        assert isinstance(event, IgnoredEvent)
        assert event.kind == GenerationEventKind.REASONING_DELTA

    def test_unknown_kind_is_ignored(self):
        event = parse_generation_event({"kind": "source-url", "url": "https://x"})
        assert event == IgnoredEvent(source_kind="source-url")

    def test_missing_kind_is_ignored(self):
        assert isinstance(parse_generation_event({"text": "x"}), IgnoredEvent)

    def test_known_kind_missing_field(self):
        with pytest.raises(ValidationError):
            parse_generation_event({"kind": "tool-result"})


# ── Transcript schemas ────────────────────────────────────────────


class TestToolInvocation:
    def test_record_without_result(self):
        inv = ToolInvocation(name="q", args={"sql": "SELECT 1"})
        assert inv.to_record() == {"name": "q", "args": {"sql": "SELECT 1"}}
        assert "has_result" not in inv.model_dump()

    def test_bind_result(self):
        inv = ToolInvocation(name="q")
        inv.bind_result([])
        assert inv.has_result
        assert inv.to_record() == {"name": "q", "args": {}, "result": []}


class TestStreamRequest:
    def test_camel_case_thread_id(self):
        body = StreamRequest.model_validate({"threadId": "t-1", "message": "hi"})
        assert body.thread_id == "t-1"
        assert body.messages is None

    def test_empty_message_rejected(self):
        with pytest.raises(ValidationError):
            StreamRequest.model_validate({"threadId": "t-1", "message": ""})
