"""LiteLLM tool-loop engine implementing the GenerationEngine interface.

Streams each model step through ``litellm.acompletion(stream=True)``,
assembles streamed tool-call fragments, executes the requested tools and
feeds their results back until the model answers without calling a tool
or the step limit is reached. Transient failures are retried with
exponential backoff.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from chassist.errors import EngineError
from chassist.providers.base import GenerationEngine, ToolSpec
from chassist.schemas.config import AssistantConfig
from chassist.schemas.events import (
    FinishStep,
    GenerationEvent,
    IgnoredEvent,
    StartStep,
    TextDelta,
    ToolCall,
    ToolResult,
)
from chassist.stream.correlator import parse_tool_args

logger = logging.getLogger(__name__)

# Max retries for transient failures
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds

# OpenAI-style finish reasons mapped to the engine's vocabulary
_FINISH_REASONS = {
    "stop": "stop",
    "tool_calls": "tool-calls",
    "function_call": "tool-calls",
    "length": "length",
    "content_filter": "content-filter",
}


def _short_error_reason(error: Exception | None) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error."""
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    return str(error)[:80]


def map_finish_reason(raw: str | None, has_tool_calls: bool) -> str:
    """Translate a provider finish reason; tool-calling steps never 'stop'."""
    if has_tool_calls:
        return "tool-calls"
    if raw is None:
        return "stop"
    return _FINISH_REASONS.get(raw, raw.replace("_", "-"))


@dataclass
class _PendingToolCall:
    """A tool call being assembled from streamed fragments."""

    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments or "{}"},
        }


def _merge_fragment(pending: dict[int, _PendingToolCall], fragment: Any) -> None:
    """Fold one streamed tool-call delta into the call it belongs to."""
    index = getattr(fragment, "index", None) or 0
    call = pending.setdefault(index, _PendingToolCall())
    if getattr(fragment, "id", None):
        call.id = fragment.id
    function = getattr(fragment, "function", None)
    if function is not None:
        if getattr(function, "name", None):
            call.name = function.name
        if getattr(function, "arguments", None):
            call.arguments += function.arguments


class LiteLLMEngine(GenerationEngine):
    """Tool-loop generation engine powered by LiteLLM."""

    def __init__(self, config: AssistantConfig, tools: list[ToolSpec] | None = None) -> None:
        super().__init__(config, tools)
        # Resolve API key from environment
        self._api_key = os.environ.get(config.api_key_env, "")

    async def stream(self, messages: list[dict[str, Any]]) -> AsyncIterator[GenerationEvent]:
        """Run the tool loop for one turn, yielding generation events.

        Raises:
            EngineError: If a model call fails after all retries.
            TimeoutError: If a model call times out on every attempt.
        """
        conversation: list[dict[str, Any]] = list(messages)
        if self._config.system_prompt:
            conversation.insert(0, {"role": "system", "content": self._config.system_prompt})

        for step in range(self._config.max_steps):
            yield StartStep()

            kwargs = self._build_completion_kwargs(conversation)
            response = await self._call_streaming_with_retry(kwargs)

            text_parts: list[str] = []
            pending: dict[int, _PendingToolCall] = {}
            raw_finish: str | None = None

            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if delta is not None:
                    reasoning = getattr(delta, "reasoning_content", None)
                    if reasoning:
                        yield IgnoredEvent(
                            kind="reasoning-delta", source_kind="reasoning-delta", text=reasoning,
                        )
                    content = getattr(delta, "content", None)
                    if content:
                        text_parts.append(content)
                        yield TextDelta(text=content)
                    for fragment in getattr(delta, "tool_calls", None) or []:
                        _merge_fragment(pending, fragment)
                if choice.finish_reason:
                    raw_finish = choice.finish_reason

            calls = [pending[index] for index in sorted(pending)]
            if calls:
                conversation.append({
                    "role": "assistant",
                    "content": "".join(text_parts) or None,
                    "tool_calls": [call.to_message() for call in calls],
                })
                for call in calls:
                    yield ToolCall(tool_name=call.name, raw_input=call.arguments)
                    result = await self._execute_tool(call)
                    conversation.append({
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(result, default=str),
                    })
                    yield ToolResult(tool_name=call.name, raw_output=result)
            else:
                conversation.append({"role": "assistant", "content": "".join(text_parts)})

            yield FinishStep(finish_reason=map_finish_reason(raw_finish, bool(calls)))

            if not calls:
                return
            logger.debug("Step %d used %d tool(s), continuing", step + 1, len(calls))

        logger.warning(
            "Tool loop for %s stopped at the %d-step limit",
            self._config.model, self._config.max_steps,
        )

    async def _execute_tool(self, call: _PendingToolCall) -> Any:
        """Run a tool handler; failures become an ``{"error": ...}`` result."""
        tool = self._tools.get(call.name)
        if tool is None:
            return {"error": f"Unknown tool: {call.name}"}
        try:
            result = tool.handler(parse_tool_args(call.arguments))
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as exc:
            logger.warning("Tool %s failed: %s", call.name, exc)
            return {"error": str(exc) or type(exc).__name__}
        return result

    def _build_completion_kwargs(self, messages: list[dict[str, Any]]) -> dict:
        """Build the kwargs dict for litellm.acompletion."""
        kwargs: dict = {
            "model": self._config.model,
            "messages": messages,
            "timeout": float(self._config.timeout),
            "temperature": self._config.temperature,
            "stream": True,
        }

        # Set API key if available
        if self._api_key:
            kwargs["api_key"] = self._api_key

        # Set custom API base if configured
        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base

        if self._tools:
            kwargs["tools"] = [tool.to_openai() for tool in self._tools.values()]

        return kwargs

    async def _call_streaming_with_retry(self, kwargs: dict):
        """Call litellm.acompletion with stream=True and retry on failure.

        Retries on transient errors (rate limits, server errors, timeouts).
        Non-retryable errors (auth, invalid request) are raised immediately.

        Raises:
            TimeoutError: If all retries time out.
            EngineError: If all retries fail with non-timeout errors.
        """
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                return await litellm.acompletion(**kwargs)
            except TimeoutError:
                last_error = TimeoutError(
                    f"Streaming call timed out after {kwargs.get('timeout')}s "
                    f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                )
            except litellm.AuthenticationError:
                raise EngineError(
                    f"Authentication failed for {self._config.model}. "
                    f"Check that {self._config.api_key_env} is set correctly."
                ) from None
            except litellm.BadRequestError as e:
                raise EngineError(f"Bad request to {self._config.model}: {e}") from e
            except (
                litellm.RateLimitError,
                litellm.ServiceUnavailableError,
                litellm.InternalServerError,
                litellm.APIConnectionError,
            ) as e:
                last_error = e

            if attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2**attempt)
                logger.warning(
                    "Streaming retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1, _MAX_RETRIES, self._config.model,
                    _short_error_reason(last_error), backoff,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, TimeoutError):
            raise last_error
        raise EngineError(
            f"Streaming call to {self._config.model} failed after "
            f"{_MAX_RETRIES} retries: {last_error}"
        ) from last_error
