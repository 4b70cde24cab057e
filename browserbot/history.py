"""
Conversation history for BrowserBot runs.

Append-only record of prompts and responses for one run. Entries are never
edited; oversized entries are truncated only in the copies prepared for
transmission to the model.
"""

import time
from typing import Optional

from .types import ConversationMessage, MessageRole


COMPLETION_HINTS = (
    "task complete",
    "successfully completed",
    "done",
    "finished",
    "accomplished",
    "message sent",
    "action completed",
)

DEFAULT_MAX_CONTENT_SIZE = 60000


def truncate_content(content: str, max_size: int = DEFAULT_MAX_CONTENT_SIZE) -> str:
    """Cut content to max_size characters and note how much was dropped."""
    if len(content) <= max_size:
        return content
    omitted = len(content) - max_size
    return (
        content[:max_size]
        + f"\n\n... [Truncated: {omitted} characters omitted to prevent context overflow]"
    )


class ConversationHistory:
    """Tracks the messages exchanged during a run."""

    def __init__(self):
        self._messages: list[ConversationMessage] = []
        self._started_at = time.monotonic()

    def __len__(self) -> int:
        return len(self._messages)

    def add_user_message(self, content: str, step_number: Optional[int] = None) -> None:
        self._messages.append(ConversationMessage(
            role=MessageRole.USER,
            content=content,
            step_number=step_number,
        ))

    def add_assistant_message(
        self,
        content: str,
        step_number: Optional[int] = None,
        tools_invoked: tuple[str, ...] = (),
    ) -> None:
        self._messages.append(ConversationMessage(
            role=MessageRole.ASSISTANT,
            content=content,
            step_number=step_number,
            tools_invoked=tuple(tools_invoked),
        ))

    def add_system_message(self, content: str) -> None:
        self._messages.append(ConversationMessage(
            role=MessageRole.SYSTEM,
            content=content,
        ))

    def messages(self) -> list[ConversationMessage]:
        """All messages in chronological order (a copy)."""
        return list(self._messages)

    def recent(self, count: int) -> list[ConversationMessage]:
        """The last ``count`` messages."""
        if count <= 0:
            return []
        return self._messages[-count:]

    def summary(self) -> str:
        elapsed = round(time.monotonic() - self._started_at)
        user_count = sum(1 for m in self._messages if m.role == MessageRole.USER)
        assistant_count = sum(1 for m in self._messages if m.role == MessageRole.ASSISTANT)
        return (
            f"Conversation started {elapsed}s ago. "
            f"{user_count} user messages, {assistant_count} assistant responses."
        )

    def format_for_context(self, max_messages: int = 10) -> str:
        """Render the last messages as readable text.

        Args:
            max_messages: Number of trailing messages to include

        Returns:
            Messages separated by blank lines
        """
        rendered = []
        for message in self.recent(max_messages):
            step = f"[Step {message.step_number}]" if message.step_number else ""
            stamp = message.timestamp.strftime("%H:%M:%S")
            rendered.append(
                f"{step} {message.role.value.upper()} ({stamp}): {message.content}"
            )
        return "\n\n".join(rendered)

    def messages_for_transmission(
        self,
        max_messages: Optional[int] = None,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
    ) -> list[dict[str, str]]:
        """Prepare user/assistant messages for a model request.

        System entries are dropped and each entry is truncated to
        ``max_content_size`` characters.

        Args:
            max_messages: Only consider the last N messages (None or 0 for all)
            max_content_size: Per-message character cap

        Returns:
            List of {"role", "content"} dicts
        """
        messages = self._messages
        if max_messages and max_messages > 0:
            messages = messages[-max_messages:]

        return [
            {"role": m.role.value, "content": truncate_content(m.content, max_content_size)}
            for m in messages
            if m.role in (MessageRole.USER, MessageRole.ASSISTANT)
        ]

    def actions_taken(self) -> list[str]:
        """Assistant responses that describe an action or tool use."""
        actions = []
        for message in self._messages:
            if message.role != MessageRole.ASSISTANT:
                continue
            if message.tools_invoked or "Action:" in message.content or "Tool:" in message.content:
                actions.append(message.content)
        return actions

    def looks_complete(self) -> bool:
        """Heuristic completion check over the last three messages."""
        recent_text = " ".join(m.content.lower() for m in self.recent(3))
        return any(hint in recent_text for hint in COMPLETION_HINTS)
