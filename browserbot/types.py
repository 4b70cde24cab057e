"""
Type definitions for BrowserBot.

Provides typed dataclasses for the structures shared by the agent loop,
the prompt composer, the turn executor and the browser tool gateway.
These types serve as documentation for the data shapes used throughout
the codebase.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


class ExitReason(str, Enum):
    """Why the agent stopped executing."""
    SUCCESS = "success"
    MAX_STEPS = "max_steps"
    MAX_FAILURES = "max_failures"
    USER_INTERRUPT = "user_interrupt"
    ERROR = "error"


class MessageRole(str, Enum):
    """Who sent a conversation message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class ProgressState:
    """Step and failure bookkeeping for one run.

    Owned by ProgressTracker; other components only ever see copies.

    Attributes:
        current_step: Number of iterations started so far
        max_steps: Step budget for the run
        consecutive_failures: Turn failures since the last successful turn
        is_done: The model declared the task complete
        should_stop: The loop must not start another iteration
        interrupted: The user stopped the run
    """
    current_step: int = 0
    max_steps: int = 100
    consecutive_failures: int = 0
    is_done: bool = False
    should_stop: bool = False
    interrupted: bool = False


@dataclass(frozen=True)
class Verdict:
    """Terminal judgment parsed from a model response.

    Attributes:
        is_complete: A completion signal was found
        is_failed: A failure signal was found
        observation: Text of an OBSERVATION: section, if present
        reasoning: Text of a REASONING: section, if present
        action: Text of an ACTION: section, if present
    """
    is_complete: bool = False
    is_failed: bool = False
    observation: Optional[str] = None
    reasoning: Optional[str] = None
    action: Optional[str] = None

    @property
    def is_ambiguous(self) -> bool:
        """Both completion and failure signals fired."""
        return self.is_complete and self.is_failed


@dataclass(frozen=True)
class TurnResult:
    """Accumulated output of one model turn."""
    response_text: str
    tools_invoked: tuple[str, ...] = ()


@dataclass(frozen=True)
class IterationOutcome:
    """Evaluated result of one loop iteration."""
    is_complete: bool
    is_failed: bool
    response_text: str
    tools_invoked: tuple[str, ...] = ()


@dataclass(frozen=True)
class ObservationElement:
    """One element of a page snapshot.

    Attributes:
        role: ARIA role token (button, link, textbox, ...)
        name: Accessible name shown to the user
        ref: Stable reference id the model uses to target the element
        url: Link target, if the element carries one
        visible: False when the snapshot marks the element hidden
    """
    role: str
    name: str = ""
    ref: str = ""
    url: str = ""
    visible: bool = True

    def with_url(self, url: str) -> "ObservationElement":
        """Return a copy carrying the given link target."""
        return ObservationElement(
            role=self.role,
            name=self.name,
            ref=self.ref,
            url=url,
            visible=self.visible,
        )


@dataclass
class BrowserState:
    """Browser page state as presented to the model.

    Attributes:
        url: Current page URL
        title: Page title
        loaded: Whether the page finished loading
        elements: Actionable elements from the last snapshot
    """
    url: str = ""
    title: str = ""
    loaded: bool = True
    elements: list[ObservationElement] = field(default_factory=list)


@dataclass
class CompressedSnapshot:
    """Result of compressing a page snapshot.

    Attributes:
        text: Compact listing sent to the model
        url: Page URL from the snapshot header
        title: Page title from the snapshot header
        loaded: Page loaded flag from the snapshot header
        elements: Kept elements in document order
        original_size: Character count of the raw snapshot
        compressed_size: Character count of the compact listing
    """
    text: str
    url: str = ""
    title: str = ""
    loaded: bool = True
    elements: list[ObservationElement] = field(default_factory=list)
    original_size: int = 0
    compressed_size: int = 0

    @property
    def reduction(self) -> float:
        """Size reduction as a percentage of the original."""
        if self.original_size <= 0:
            return 0.0
        return (1 - self.compressed_size / self.original_size) * 100

    def to_browser_state(self) -> BrowserState:
        """Convert to the state block used in user prompts."""
        return BrowserState(
            url=self.url,
            title=self.title,
            loaded=self.loaded,
            elements=list(self.elements),
        )


@dataclass(frozen=True)
class Prompt:
    """System instructions and user message for one turn."""
    system: str
    user: str


@dataclass
class ConversationMessage:
    """A single entry of the conversation record."""
    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    step_number: Optional[int] = None
    tools_invoked: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "step_number": self.step_number,
            "tools_invoked": list(self.tools_invoked),
        }


@dataclass
class RunOptions:
    """Per-run knobs for BrowserAgent.run()."""
    max_steps: int = 100
    max_failures: int = 3
    temperature: float = 0.7
    max_tokens: int = 4000
    system_prompt: Optional[str] = None


@dataclass
class TaskResult:
    """Final result returned after a run.

    Attributes:
        success: Whether the model declared the task complete
        message: Human-readable outcome
        steps_taken: Iterations started
        exit_reason: Why the loop ended
        conversation_history: Prompts and responses of the run
        final_response: Text of the last model response, if any
        execution_time_ms: Wall-clock duration of the run
    """
    success: bool
    message: str
    steps_taken: int
    exit_reason: ExitReason
    conversation_history: list[ConversationMessage] = field(default_factory=list)
    final_response: Optional[str] = None
    execution_time_ms: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "message": self.message,
            "steps_taken": self.steps_taken,
            "exit_reason": self.exit_reason.value,
            "final_response": self.final_response,
            "execution_time_ms": self.execution_time_ms,
            "conversation_history": [m.to_dict() for m in self.conversation_history],
        }


# =============================================================================
# Stream events emitted by model providers
# =============================================================================

@dataclass(frozen=True)
class TextFragment:
    """Incremental piece of response text."""
    text: str


@dataclass(frozen=True)
class ToolStarted:
    """The model invoked a tool."""
    tool: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolEnded:
    """A tool invocation finished; error is set when it failed."""
    tool: str
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


StreamEvent = Union[TextFragment, ToolStarted, ToolEnded]


@dataclass(frozen=True)
class ToolSpec:
    """Tool advertised by a tool backend."""
    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_openai_tool(self) -> dict[str, Any]:
        """Format as an OpenAI function-calling tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description or f"Browser tool {self.name}",
                "parameters": self.input_schema,
            },
        }


@dataclass
class ToolOutput:
    """Result of invoking a backend tool.

    Attributes:
        content: Structured content blocks or plain text shown to the model
        raw: Backend-specific payload kept for diagnostics
    """
    content: Any
    raw: Any = None

    @property
    def text(self) -> str:
        """Flatten content into plain text."""
        return content_to_text(self.content)


def content_to_text(content: Any) -> str:
    """Flatten a text or content-block payload into a string.

    Args:
        content: A string, or a list of {"type": "text", "text": ...} blocks

    Returns:
        Concatenated text of all text blocks
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "\n".join(parts)
    return str(content)
