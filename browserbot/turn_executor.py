"""
Turn execution for BrowserBot.

Runs one request/response cycle against the model provider and folds the
ordered event stream into a single TurnResult.
"""

import logging
from typing import Callable, Optional

from .errors import TurnFailure
from .provider import ModelProvider
from .types import Prompt, StreamEvent, TextFragment, ToolEnded, ToolStarted, TurnResult

logger = logging.getLogger(__name__)


EventObserver = Callable[[StreamEvent], None]


class TurnExecutor:
    """Executes single model turns for one run."""

    def __init__(
        self,
        provider: ModelProvider,
        session_id: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        observer: Optional[EventObserver] = None,
    ):
        """Initialize the executor.

        Args:
            provider: Streaming model provider
            session_id: Run identifier used to correlate turns
            temperature: Sampling temperature for every turn
            max_tokens: Output token budget for every turn
            observer: Called with each event as it arrives
        """
        self.provider = provider
        self.session_id = session_id
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.observer = observer

    def turn_id(self, step: Optional[int]) -> str:
        """Correlation id for one turn of this run."""
        return f"{self.session_id}:{step}" if step is not None else self.session_id

    async def run(
        self,
        prompt: Prompt,
        step: Optional[int] = None,
        history: Optional[list[dict[str, str]]] = None,
    ) -> TurnResult:
        """Execute one turn and accumulate its output.

        Args:
            prompt: System instructions and user message
            step: Iteration number, used for the turn id
            history: Earlier messages to send before the prompt

        Returns:
            TurnResult with the full response text and tools in first-seen order

        Raises:
            TurnFailure: If the provider stream raises before it ends
        """
        turn_id = self.turn_id(step)
        text_parts: list[str] = []
        tools: list[str] = []

        try:
            async for event in self.provider.stream(
                prompt.user,
                prompt.system,
                self.temperature,
                self.max_tokens,
                session_id=turn_id,
                history=history,
            ):
                if isinstance(event, TextFragment):
                    text_parts.append(event.text)
                elif isinstance(event, ToolStarted):
                    if event.tool not in tools:
                        tools.append(event.tool)
                elif isinstance(event, ToolEnded):
                    if event.error:
                        logger.warning(f"[{turn_id}] Tool {event.tool} failed: {event.error}")
                else:
                    logger.debug(f"[{turn_id}] Ignoring unknown stream event {event!r}")
                    continue

                if self.observer is not None:
                    self.observer(event)
        except TurnFailure:
            raise
        except Exception as e:
            logger.debug(f"[{turn_id}] Stream failed", exc_info=True)
            raise TurnFailure(str(e) or e.__class__.__name__, step=step) from e

        return TurnResult(response_text="".join(text_parts), tools_invoked=tuple(tools))
