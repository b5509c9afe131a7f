"""Tests for scratchpad stripping.

Covers end-marker precedence, start-of-text fallbacks, real words that
must survive, and stability of already-cleaned output.
"""

from __future__ import annotations

import pytest

from chassist.stream.scratchpad import SCRATCHPAD_END_MARKERS, strip_scratchpad

# ══════════════════════════════════════════════════════════════════
# End markers
# ══════════════════════════════════════════════════════════════════


class TestEndMarkers:
    """Cut after the rightmost end-marker."""

    def test_assistantfinal_marker(self):
        text = "some reasoning assistantfinalThe capital is Paris."
        assert strip_scratchpad(text) == "The capital is Paris."

    def test_marker_is_case_insensitive_and_keeps_original_case(self):
        text = "analysis blah AssistantFinal  The ANSWER is 42 "
        assert strip_scratchpad(text) == "The ANSWER is 42"

    def test_assistant_newline_final_marker(self):
        assert strip_scratchpad("thinking...\nassistant\nfinal\nHello") == "Hello"

    def test_assistant_space_final_marker(self):
        assert strip_scratchpad("reasoning assistant final Result: 3 rows") == "Result: 3 rows"

    def test_final_on_own_line(self):
        assert strip_scratchpad("plan the query\nfinal\nHere it is.") == "Here it is."

    def test_newline_final_without_trailing_newline(self):
        assert strip_scratchpad("plan the query\nfinalHere it is.") == "Here it is."

    def test_rightmost_marker_wins(self):
        text = "a assistantfinal first answer assistantfinal second answer"
        assert strip_scratchpad(text) == "second answer"

    def test_latest_of_different_markers_wins(self):
        text = "x assistantfinal early\nfinal\nlate"
        assert strip_scratchpad(text) == "late"

    def test_marker_at_end_of_text_is_ignored(self):
        # Nothing follows the marker, so the cut would empty the answer
        text = "Some answer assistantfinal"
        assert strip_scratchpad(text) == text

    def test_marker_list_order(self):
        assert SCRATCHPAD_END_MARKERS[0] == "assistantfinal"
        assert SCRATCHPAD_END_MARKERS[-1] == "\nfinal"


# ══════════════════════════════════════════════════════════════════
# Start-of-text fallbacks
# ══════════════════════════════════════════════════════════════════


class TestLeadingLabels:
    """Fallbacks applied when no end-marker is present."""

    def test_analysis_prefix_cut_at_markdown_heading(self):
        text = "analysisThinking about it\n\n# Answer\nHello"
        assert strip_scratchpad(text) == "# Answer\nHello"

    def test_thinking_prefix_cut_at_table(self):
        text = "thinking: need a table\n| a | b |\n|---|---|"
        assert strip_scratchpad(text) == "| a | b |\n|---|---|"

    def test_analysis_prefix_cut_at_numbered_list(self):
        text = "Analysis of the schema\n  1. events\n2. users"
        assert strip_scratchpad(text) == "1. events\n2. users"

    def test_analysis_prefix_without_markdown_is_unchanged(self):
        text = "analysis shows the table is large"
        assert strip_scratchpad(text) == text

    def test_bare_final_prefix(self):
        assert strip_scratchpad("finalBelow is the result.") == "Below is the result."

    def test_final_prefix_followed_by_markdown(self):
        assert strip_scratchpad("  final## Summary") == "## Summary"

    def test_final_alone(self):
        assert strip_scratchpad("final") == ""

    @pytest.mark.parametrize("text", [
        "The value is finally computed.",
        "finally, the query finished",
        "finalize the migration first",
    ])
    def test_real_words_survive(self, text):
        assert strip_scratchpad(text) == text


# ══════════════════════════════════════════════════════════════════
# No-ops and stability
# ══════════════════════════════════════════════════════════════════


class TestNoOp:
    def test_empty_text(self):
        assert strip_scratchpad("") == ""

    def test_plain_answer_unchanged(self):
        text = "There are 12 tables in the default database."
        assert strip_scratchpad(text) == text

    def test_whitespace_preserved_when_no_rule_applies(self):
        text = "  Hello world  "
        assert strip_scratchpad(text) == text

    @pytest.mark.parametrize("text", [
        "some reasoning assistantfinalThe capital is Paris.",
        "analysisThinking about it\n\n# Answer\nHello",
        "finalBelow is the result.",
        "plain text",
    ])
    def test_second_pass_is_noop(self, text):
        once = strip_scratchpad(text)
        assert strip_scratchpad(once) == once
