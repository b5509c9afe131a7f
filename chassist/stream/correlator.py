"""Correlation of asynchronous tool results with the calls that caused them."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from chassist.schemas.transcript import ToolInvocation

logger = logging.getLogger(__name__)


def parse_tool_args(raw_args: Any) -> dict[str, Any]:
    """Parse raw tool-call arguments into a mapping.

    JSON strings are decoded; mappings are used as-is. Anything that does
    not yield a mapping (bad JSON, lists, scalars, None) becomes ``{}``.
    """
    if isinstance(raw_args, str):
        try:
            parsed = json.loads(raw_args)
        except json.JSONDecodeError:
            logger.debug("Unparseable tool arguments, using empty args")
            return {}
        return dict(parsed) if isinstance(parsed, Mapping) else {}
    if isinstance(raw_args, Mapping):
        return dict(raw_args)
    return {}


class ToolCorrelator:
    """Tracks tool invocations of one assistant turn in call order.

    A result binds to the most recently registered invocation with the same
    name that has no result yet, so repeated calls to one tool resolve
    last-in-first-matched.
    """

    def __init__(self) -> None:
        self._invocations: list[ToolInvocation] = []

    @property
    def invocations(self) -> list[ToolInvocation]:
        """All invocations registered so far, in call order."""
        return list(self._invocations)

    def register_call(self, name: str, raw_args: Any) -> ToolInvocation:
        """Record a new, unmatched invocation and return it."""
        invocation = ToolInvocation(name=name, args=parse_tool_args(raw_args))
        self._invocations.append(invocation)
        return invocation

    def resolve_result(self, name: str, raw_result: Any) -> ToolInvocation | None:
        """Bind a result to its invocation.

        Returns the matched invocation, or None when no unmatched call with
        this name exists (the result is then reported but not attached).
        """
        for invocation in reversed(self._invocations):
            if invocation.name == name and not invocation.has_result:
                invocation.bind_result(raw_result)
                return invocation
        logger.debug("Tool result for %s has no pending call", name)
        return None
