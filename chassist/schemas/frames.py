"""Wire frames sent to the browser over the assistant stream.

Each frame serializes to one JSON object with a ``type`` discriminator.
Field names follow the client's camelCase protocol via aliases.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TextDeltaFrame(BaseModel):
    """Assistant text the client appends to the visible answer."""

    type: Literal["text-delta"] = "text-delta"
    text: str


class ToolCallFrame(BaseModel):
    """A tool invocation has started."""

    type: Literal["tool-call"] = "tool-call"
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)


class ChartDataFrame(BaseModel):
    """A chart specification produced by the charting tool."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["chart-data"] = "chart-data"
    chart_spec: Any = Field(alias="chartSpec")


class ToolCompleteFrame(BaseModel):
    """A tool invocation finished, with a short human-readable summary."""

    type: Literal["tool-complete"] = "tool-complete"
    tool: str
    summary: str | None = None


class ErrorFrame(BaseModel):
    """An error message for the client."""

    type: Literal["error"] = "error"
    error: str


class DoneFrame(BaseModel):
    """Terminal frame of a successfully completed stream."""

    type: Literal["done"] = "done"


OutboundFrame = Annotated[
    Union[
        TextDeltaFrame,
        ToolCallFrame,
        ChartDataFrame,
        ToolCompleteFrame,
        ErrorFrame,
        DoneFrame,
    ],
    Field(discriminator="type"),
]
