"""Abstract base class for generation engines and the tool definition type.

A GenerationEngine runs the model/tool loop for one assistant turn and
yields GenerationEvents. The response-stream pipeline interacts only with
this interface; it never calls model SDKs directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chassist.schemas.config import AssistantConfig
from chassist.schemas.events import GenerationEvent

# A tool handler receives parsed arguments; it may be sync or async.
ToolHandler = Callable[[dict[str, Any]], Any]


class ToolSpec(BaseModel):
    """A tool the model may call during a turn."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(description="Tool name exposed to the model")
    description: str = Field(default="", description="What the tool does")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema of the tool arguments",
    )
    handler: ToolHandler = Field(description="Callable executing the tool")

    def to_openai(self) -> dict[str, Any]:
        """Render in the OpenAI function-tool format LiteLLM accepts."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class GenerationEngine(ABC):
    """Abstract interface for anything that produces a generation stream."""

    def __init__(self, config: AssistantConfig, tools: list[ToolSpec] | None = None) -> None:
        self._config = config
        self._tools: dict[str, ToolSpec] = {tool.name: tool for tool in tools or []}

    @property
    def config(self) -> AssistantConfig:
        return self._config

    @property
    def tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    @abstractmethod
    def stream(self, messages: list[dict[str, Any]]) -> AsyncIterator[GenerationEvent]:
        """Run one assistant turn and yield its generation events.

        Args:
            messages: Conversation history in OpenAI format, newest last.

        Yields:
            GenerationEvents with each step's events contiguous and every
            StartStep closed by a FinishStep.
        """
