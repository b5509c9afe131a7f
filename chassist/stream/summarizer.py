"""Tool result summaries and transport-safe chart serialization."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

SUMMARY_MAX_CHARS = 60

# Largest integer a JSON consumer using IEEE-754 doubles represents exactly
MAX_SAFE_INTEGER = 2**53 - 1


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def summarize_result(value: Any) -> str | None:
    """Reduce a tool result to a short human-readable synopsis.

    - sequences: ``"N rows returned"``
    - non-empty mappings: the first value when it is text or a number,
      otherwise ``"K fields"``
    - text: the first 60 characters
    - anything else, including an empty mapping: None
    """
    if isinstance(value, (list, tuple)):
        return f"{_plural(len(value), 'row')} returned"
    if isinstance(value, Mapping):
        if not value:
            return None
        first = next(iter(value.values()))
        if isinstance(first, str) or _is_number(first):
            return str(first)[:SUMMARY_MAX_CHARS]
        return _plural(len(value), "field")
    if isinstance(value, str):
        return value[:SUMMARY_MAX_CHARS]
    return None


def serialize_numeric_safe(value: Any) -> Any:
    """Return a copy of ``value`` safe for JSON consumers using doubles.

    Integers within the safe-integer range stay numbers; larger ones
    (ClickHouse UInt64/Int128 columns) become their decimal string so no
    magnitude is lost in transport.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value if abs(value) <= MAX_SAFE_INTEGER else str(value)
    if isinstance(value, Mapping):
        return {key: serialize_numeric_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_numeric_safe(item) for item in value]
    return value
