"""Exception hierarchy for chassist."""

class AssistantError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(AssistantError):
    """Raised when the assistant configuration is missing or invalid."""


class EngineError(AssistantError):
    """Raised when the model call fails after all retries."""
