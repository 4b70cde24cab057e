"""
Tests for the conversation history.
"""

import pytest

from browserbot.history import ConversationHistory, truncate_content
from browserbot.types import MessageRole


class TestTruncation:
    """Per-message truncation for transmission."""

    def test_short_content_untouched(self):
        assert truncate_content("hello", max_size=10) == "hello"

    def test_long_content_truncated(self):
        result = truncate_content("x" * 25, max_size=10)
        assert result == (
            "x" * 10
            + "\n\n... [Truncated: 15 characters omitted to prevent context overflow]"
        )


class TestConversationHistory:
    """Recording and reading messages."""

    @pytest.fixture
    def history(self):
        history = ConversationHistory()
        history.add_system_message("system note")
        history.add_user_message("TASK: open example.com", step_number=1)
        history.add_assistant_message(
            "Navigated to example.com",
            step_number=1,
            tools_invoked=("browser_navigate",),
        )
        history.add_user_message("TASK: open example.com", step_number=2)
        history.add_assistant_message("Thinking about it", step_number=2)
        return history

    def test_order_preserved(self, history):
        roles = [m.role for m in history.messages()]
        assert roles == [
            MessageRole.SYSTEM,
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.USER,
            MessageRole.ASSISTANT,
        ]
        assert len(history) == 5

    def test_messages_returns_copy(self, history):
        messages = history.messages()
        messages.clear()
        assert len(history) == 5

    def test_transmission_drops_system(self, history):
        transmitted = history.messages_for_transmission()
        assert [m["role"] for m in transmitted] == ["user", "assistant", "user", "assistant"]

    def test_transmission_window_and_truncation(self, history):
        history.add_user_message("y" * 50)
        transmitted = history.messages_for_transmission(max_messages=2, max_content_size=20)
        assert len(transmitted) == 2
        assert transmitted[-1]["content"].startswith("y" * 20 + "\n\n... [Truncated: 30 characters")
        # The stored entry is never edited
        assert history.messages()[-1].content == "y" * 50

    def test_recent(self, history):
        assert [m.content for m in history.recent(1)] == ["Thinking about it"]
        assert history.recent(0) == []

    def test_actions_taken(self, history):
        assert history.actions_taken() == ["Navigated to example.com"]

    def test_looks_complete(self, history):
        assert not history.looks_complete()
        history.add_assistant_message("TASK COMPLETE: page opened")
        assert history.looks_complete()

    def test_format_for_context(self, history):
        text = history.format_for_context(max_messages=2)
        assert "[Step 2] USER" in text
        assert "[Step 2] ASSISTANT" in text
        assert "Navigated" not in text

    def test_summary(self, history):
        assert "2 user messages, 2 assistant responses." in history.summary()
