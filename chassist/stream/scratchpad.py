"""Removal of leaked chain-of-thought text from a finished step buffer.

Some models leak their scratchpad into the visible answer, typically as
``analysis<reasoning>assistantfinal<answer>``. The stripper keeps only what
follows the last known end-marker, and falls back to start-of-text
heuristics when no marker is present.
"""

from __future__ import annotations

import re

# Ordered end-markers. Everything up to and including the rightmost match
# of any of them is reasoning.
SCRATCHPAD_END_MARKERS: tuple[str, ...] = (
    "assistantfinal",
    "assistant\nfinal",
    "assistant final",
    "\nfinal\n",
    "\nfinal",
)

# Leading reasoning labels handled by the start-of-text fallback
_FINAL_PREFIX = "final"
_REASONING_PREFIXES: tuple[str, ...] = ("analysis", "thinking")

# Newline followed by the start of a markdown block (table, heading, list,
# quote, numbered list)
_MARKDOWN_BLOCK_RE = re.compile(r"\n\s*(?=[|#\-*>\d])")


def _find_best_cut(text: str) -> int:
    """Return the cut position after the rightmost end-marker, or -1."""
    lowered = text.lower()
    best_cut = -1
    for marker in SCRATCHPAD_END_MARKERS:
        idx = lowered.rfind(marker)
        if idx != -1:
            best_cut = max(best_cut, idx + len(marker))
    return best_cut


def _strip_leading_label(text: str) -> str | None:
    """Apply the start-of-text fallbacks, or return None if none applies."""
    trimmed = text.lstrip()

    # Bare "final" label; "finally" / "finalize" are real words
    if len(trimmed) >= 5 and trimmed[:5].lower() == _FINAL_PREFIX:
        if len(trimmed) == 5 or not ("a" <= trimmed[5] <= "z"):
            return trimmed[5:].strip()

    if trimmed.lower().startswith(_REASONING_PREFIXES):
        match = _MARKDOWN_BLOCK_RE.search(trimmed)
        if match and match.start() > 0:
            return trimmed[match.start():].strip()

    return None


def strip_scratchpad(text: str) -> str:
    """Strip leaked reasoning from a completed text buffer.

    Args:
        text: The full buffered text of one generation step.

    Returns:
        The text after the last scratchpad end-marker (trimmed), the text
        with a leading reasoning label removed, or ``text`` unchanged when
        no heuristic applies. Returned text keeps its original case.
    """
    if not text:
        return text

    best_cut = _find_best_cut(text)
    if 0 < best_cut < len(text):
        return text[best_cut:].strip()

    stripped = _strip_leading_label(text)
    if stripped is not None:
        return stripped
    return text
