"""
Tests for prompt composition and response parsing.
"""

import pytest

from browserbot.prompts import (
    LAST_STEP_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    TOOL_USAGE_INSTRUCTIONS,
    TaskCategory,
    build_instructions,
    build_prompt,
    build_user_turn,
    classify_task,
    extract_section,
    is_media_url,
    parse_verdict,
)
from browserbot.types import BrowserState, ObservationElement


class TestInstructions:
    """System instruction templates."""

    def test_standard_template(self):
        instructions = build_instructions()
        assert instructions.startswith(SYSTEM_PROMPT)
        assert instructions.endswith(TOOL_USAGE_INSTRUCTIONS)

    def test_last_step_template(self):
        instructions = build_instructions(is_last_step=True)
        assert instructions.startswith(LAST_STEP_SYSTEM_PROMPT)
        assert "LAST iteration" in instructions
        assert instructions.endswith(TOOL_USAGE_INSTRUCTIONS)

    def test_override_replaces_standard_template(self):
        instructions = build_instructions(override="Custom instructions")
        assert instructions == f"Custom instructions\n\n{TOOL_USAGE_INSTRUCTIONS}"

    def test_override_ignored_on_last_step(self):
        instructions = build_instructions(is_last_step=True, override="Custom instructions")
        assert instructions.startswith(LAST_STEP_SYSTEM_PROMPT)


class TestUserTurn:
    """Per-iteration user message."""

    @pytest.fixture
    def observation(self):
        elements = [
            ObservationElement(role="button", name=f"Button {i}", ref=f"e{i}")
            for i in range(1, 8)
        ]
        return BrowserState(url="https://a.test", title="A", loaded=False, elements=elements)

    def test_without_observation(self):
        text = build_user_turn("Find the price", 2, 5)
        assert text.startswith("TASK: Find the price\n\nCURRENT ITERATION: 2 of 5 (max)\n")
        assert "BROWSER STATE" not in text
        assert "LAST iteration" not in text
        assert '- If task is complete, say "TASK COMPLETE"' in text

    def test_last_step_warning(self):
        text = build_user_turn("Find the price", 5, 5, is_last_step=True)
        assert "WARNING: This is your LAST iteration! Make final decision now." in text
        assert "- You MUST conclude: either TASK COMPLETE or TASK FAILED" in text

    def test_state_preview(self, observation):
        text = build_user_turn("Find the price", 1, 5, observation=observation)
        assert "- Current URL: https://a.test" in text
        assert "- Page Title: A" in text
        assert "- Page Loaded: No" in text
        assert "- Interactive Elements: 7 found" in text
        assert '  [e5] button: "Button 5" (visible)' in text
        assert "[e6]" not in text
        assert "  ... and 2 more elements" in text

    def test_deterministic(self, observation):
        first = build_prompt("Find the price", 3, 5, observation=observation)
        second = build_prompt("Find the price", 3, 5, observation=observation)
        assert first == second


class TestVerdictParsing:
    """Completion and failure signal detection."""

    def test_complete(self):
        verdict = parse_verdict("TASK COMPLETE: the title is Example Domain")
        assert verdict.is_complete
        assert not verdict.is_failed

    def test_failed(self):
        verdict = parse_verdict("I cannot complete this because the site is down")
        assert verdict.is_failed
        assert not verdict.is_complete

    def test_both_signals(self):
        verdict = parse_verdict("Task complete... actually task failed")
        assert verdict.is_complete
        assert verdict.is_failed
        assert verdict.is_ambiguous

    def test_neither(self):
        verdict = parse_verdict("Clicking the search button next")
        assert not verdict.is_complete
        assert not verdict.is_failed

    def test_empty(self):
        verdict = parse_verdict("")
        assert not verdict.is_complete
        assert verdict.observation is None

    def test_sections(self):
        text = (
            "OBSERVATION: page loaded\n"
            "the search box is visible\n"
            "REASONING: need to search\n"
            "ACTION: type the query"
        )
        verdict = parse_verdict(text)
        assert verdict.observation == "page loaded\nthe search box is visible"
        assert verdict.reasoning == "need to search"
        assert verdict.action == "type the query"

    def test_missing_section(self):
        assert extract_section("REASONING: because", "ACTION") is None


class TestTaskClassification:
    """Task tags and media URL detection."""

    def test_media_task(self):
        assert classify_task("Play lofi music on YouTube") == frozenset({TaskCategory.MEDIA_PLAYBACK})

    def test_search_task(self):
        assert classify_task("Search Google for flights") == frozenset({TaskCategory.WEB_SEARCH})

    def test_both(self):
        assert classify_task("Search YouTube for a song") == frozenset({
            TaskCategory.MEDIA_PLAYBACK,
            TaskCategory.WEB_SEARCH,
        })

    def test_general(self):
        assert classify_task("Buy a USB-C cable on amazon") == frozenset({TaskCategory.GENERAL})

    def test_word_boundaries(self):
        """'display' does not count as 'play'."""
        assert classify_task("Change the display settings") == frozenset({TaskCategory.GENERAL})

    def test_media_urls(self):
        assert is_media_url("https://www.youtube.com/watch?v=abc")
        assert is_media_url("https://open.spotify.com/track/1")
        assert not is_media_url("https://www.youtube.com/results?search_query=lofi")
        assert not is_media_url("")
