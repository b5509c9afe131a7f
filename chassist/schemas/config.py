"""Assistant configuration schema.

Loaded from ``defaults.toml`` (or a user-supplied TOML file) by
``chassist.settings.load_assistant_config``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class AssistantConfig(BaseModel):
    """Runtime configuration for the assistant engine, pipeline and store."""

    model: str = Field(default="", description="LiteLLM model identifier (empty = AI disabled)")
    api_key_env: str = Field(
        default="OPENAI_API_KEY", description="Environment variable holding the API key",
    )
    api_base: str = Field(default="", description="Custom API base URL (empty = provider default)")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_steps: int = Field(default=30, gt=0, description="Upper bound on tool-loop steps")
    timeout: int = Field(default=120, gt=0, description="Timeout in seconds per model call")
    max_history_messages: int = Field(
        default=50, gt=0, description="Newest messages sent to the model per turn",
    )
    chart_tool: str = Field(
        default="render_chart", description="Tool whose results are chart specifications",
    )
    title_max_chars: int = Field(
        default=80, gt=0, description="Length of the auto-generated thread title",
    )
    retention_days: int = Field(default=7, gt=0, description="Days of chat history kept")
    db_path: str = Field(default="~/.chassist/chat.db", description="SQLite chat history path")
    system_prompt: str = Field(default="", description="System prompt sent with every turn")

    @property
    def enabled(self) -> bool:
        """Whether a model is configured for the assistant."""
        return bool(self.model)
