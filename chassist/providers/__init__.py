"""Generation engines that produce the assistant's event stream."""

from chassist.providers.base import GenerationEngine, ToolHandler, ToolSpec
from chassist.providers.litellm_engine import LiteLLMEngine

__all__ = [
    "GenerationEngine",
    "LiteLLMEngine",
    "ToolHandler",
    "ToolSpec",
]
