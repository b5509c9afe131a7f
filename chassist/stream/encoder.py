"""Outbound frame construction and wire encoding.

Frames are rendered as one JSON object each; ``encode_sse`` wraps a frame
as a server-sent event record. Nothing here buffers: frames are encoded
in the order they are produced.
"""

from __future__ import annotations

import json
from typing import Any

from chassist.schemas.frames import ChartDataFrame, OutboundFrame
from chassist.stream.summarizer import serialize_numeric_safe


def error_message(error: Any) -> str:
    """Render an in-band error value or exception as a client message."""
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


def chart_frame(chart_spec: Any) -> ChartDataFrame:
    """Build a chart-data frame with large integers made transport-safe."""
    return ChartDataFrame(chart_spec=serialize_numeric_safe(chart_spec))


def encode_frame(frame: OutboundFrame) -> str:
    """Serialize a frame to its JSON wire form (camelCase field names)."""
    return json.dumps(frame.model_dump(by_alias=True), default=str)


def encode_sse(frame: OutboundFrame) -> str:
    """Serialize a frame as a server-sent event ``data:`` record."""
    return f"data: {encode_frame(frame)}\n\n"
