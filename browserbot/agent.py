"""
Agent loop for BrowserBot.

Repeatedly asks the model to decide and perform browser actions until the
task is declared complete or failed, the step budget runs out, or too many
turns fail in a row.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Optional

from .browser_manager import BrowserManager
from .config import AgentConfig
from .errors import TurnFailure
from .history import ConversationHistory
from .logger import RunLogger
from .progress import ProgressTracker
from .prompts import TaskCategory, build_prompt, classify_task, is_media_url, parse_verdict
from .provider import LangChainProvider, ModelProvider
from .tool_gateway import SkipSignal, ToolGateway
from .turn_executor import TurnExecutor
from .types import (
    BrowserState,
    ExitReason,
    IterationOutcome,
    RunOptions,
    TaskResult,
    Verdict,
)

logger = logging.getLogger(__name__)


PlaybackWaiter = Callable[[], Awaitable[Any]]


def new_session_id() -> str:
    """Create the identifier for one run."""
    return f"browserbot-{uuid.uuid4().hex}"


def evaluate_turn(response_text: str, tools_invoked: tuple[str, ...]) -> tuple[IterationOutcome, Verdict]:
    """Parse a turn's response into an iteration outcome.

    When both completion and failure signals fire, failure wins.
    """
    verdict = parse_verdict(response_text)
    if verdict.is_ambiguous:
        logger.warning("Response signals both completion and failure; treating it as failed")
    outcome = IterationOutcome(
        is_complete=verdict.is_complete and not verdict.is_failed,
        is_failed=verdict.is_failed,
        response_text=response_text,
        tools_invoked=tools_invoked,
    )
    return outcome, verdict


class BrowserAgent:
    """Bounded observe-reason-act loop over a model provider."""

    def __init__(
        self,
        provider: ModelProvider,
        gateway: Optional[ToolGateway] = None,
        run_logger: Optional[RunLogger] = None,
        wait_for_playback_end: Optional[PlaybackWaiter] = None,
        history_window: int = 0,
        max_message_chars: int = 60000,
    ):
        """Initialize the agent.

        Args:
            provider: Streaming model provider with tool access
            gateway: Tool gateway, source of page observations
            run_logger: Console renderer for the run
            wait_for_playback_end: Resolves when the user ends media playback
            history_window: Earlier messages sent with each turn (0 for none)
            max_message_chars: Per-message cap for transmitted history
        """
        self.provider = provider
        self.gateway = gateway
        self.run_logger = run_logger
        self.wait_for_playback_end = wait_for_playback_end
        self.history_window = history_window
        self.max_message_chars = max_message_chars

    async def run(self, task: str, options: Optional[RunOptions] = None) -> TaskResult:
        """Run a task to completion.

        Args:
            task: Free-text task description
            options: Step budget, failure threshold and generation settings

        Returns:
            TaskResult; interrupts and turn failures end up here, never raised
        """
        options = options or RunOptions()
        session_id = new_session_id()
        tracker = ProgressTracker(max_steps=options.max_steps, max_failures=options.max_failures)
        history = ConversationHistory()
        executor = TurnExecutor(
            self.provider,
            session_id,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            observer=self.run_logger.handle_event if self.run_logger else None,
        )
        categories = classify_task(task)
        started = time.monotonic()
        final_response: Optional[str] = None

        logger.debug(f"[{session_id}] Starting run, categories={sorted(c.value for c in categories)}")

        while tracker.should_continue():
            tracker.advance()
            step = tracker.current_step
            prompt = build_prompt(
                task,
                step,
                tracker.max_steps,
                observation=self._observation(),
                is_last_step=tracker.is_last_step(),
                system_override=options.system_prompt,
            )

            context = None
            if self.history_window > 0:
                context = history.messages_for_transmission(
                    max_messages=self.history_window,
                    max_content_size=self.max_message_chars,
                )
            history.add_user_message(prompt.user, step_number=step)

            if self.run_logger:
                self.run_logger.print_iteration(step, tracker.summary())

            try:
                turn = await executor.run(prompt, step=step, history=context)
            except TurnFailure as e:
                logger.warning(f"[{session_id}] Turn {step} failed: {e}")
                tracker.record_failure()
                if self.run_logger:
                    self.run_logger.print_error(f"Turn failed: {e}")
                    self.run_logger.log_step(step, "", error=str(e))
                if tracker.consecutive_failures >= tracker.max_failures:
                    break
                continue
            except (KeyboardInterrupt, asyncio.CancelledError):
                logger.info(f"[{session_id}] Interrupted by user at step {step}")
                tracker.mark_interrupted()
                break

            final_response = turn.response_text
            history.add_assistant_message(turn.response_text, step_number=step, tools_invoked=turn.tools_invoked)
            outcome, verdict = evaluate_turn(turn.response_text, turn.tools_invoked)

            if self.run_logger:
                self.run_logger.log_step(step, turn.response_text, turn.tools_invoked, verdict)
                self.run_logger.print_verdict(verdict)

            if outcome.is_failed:
                tracker.mark_failed()
                break
            if outcome.is_complete:
                tracker.mark_complete()
                break
            tracker.record_success()

        if tracker.exit_reason() == ExitReason.SUCCESS and TaskCategory.MEDIA_PLAYBACK in categories:
            await self._hold_for_playback()

        return self.build_result(tracker, history, final_response, started)

    def build_result(
        self,
        tracker: ProgressTracker,
        history: ConversationHistory,
        final_response: Optional[str] = None,
        started: Optional[float] = None,
    ) -> TaskResult:
        """Assemble the final result from tracker state."""
        reason = tracker.exit_reason()
        if reason is None:
            logger.error("Run ended while the tracker was still in progress")
            reason = ExitReason.ERROR

        success = tracker.is_done
        message = "Task completed successfully" if success else f"Task stopped: {reason.value}"
        elapsed_ms = int((time.monotonic() - started) * 1000) if started is not None else None

        return TaskResult(
            success=success,
            message=message,
            steps_taken=tracker.current_step,
            exit_reason=reason,
            conversation_history=history.messages(),
            final_response=final_response,
            execution_time_ms=elapsed_ms,
        )

    def _observation(self) -> Optional[BrowserState]:
        if self.gateway is None:
            return None
        return self.gateway.last_observation

    async def _hold_for_playback(self) -> None:
        """Keep the browser open while media plays, until the user ends it."""
        if self.gateway is None or self.wait_for_playback_end is None:
            return

        url = await self.gateway.current_url()
        if not is_media_url(url):
            return

        if self.run_logger:
            self.run_logger.print_notice("Media is playing. Press Enter to stop playback and exit.")
        try:
            await self.wait_for_playback_end()
        except (KeyboardInterrupt, asyncio.CancelledError):
            # An interrupt ends playback as well
            logger.info("Playback ended by interrupt")


async def run_with_browser(
    config: AgentConfig,
    task: str,
    run_logger: Optional[RunLogger] = None,
    skip_signal: Optional[SkipSignal] = None,
    wait_for_playback_end: Optional[PlaybackWaiter] = None,
) -> TaskResult:
    """Launch the browser, wire the components and run one task."""
    if run_logger:
        run_logger.print_header(config.model_name, config.max_steps)

    async with BrowserManager(config) as browser_tools:
        gateway = ToolGateway(browser_tools, skip_signal=skip_signal)
        provider = LangChainProvider.from_config(config, tools=gateway)
        agent = BrowserAgent(
            provider,
            gateway=gateway,
            run_logger=run_logger,
            wait_for_playback_end=wait_for_playback_end,
            history_window=config.history_window,
            max_message_chars=config.max_message_chars,
        )
        return await agent.run(task, config.to_run_options())


def run_agent(
    config: AgentConfig,
    task: str,
    run_logger: Optional[RunLogger] = None,
    skip_signal: Optional[SkipSignal] = None,
    wait_for_playback_end: Optional[PlaybackWaiter] = None,
) -> TaskResult:
    """Convenience function to run the agent.

    Args:
        config: Agent configuration
        task: Task to accomplish
        run_logger: Console renderer
        skip_signal: Resolves when the user skips a media wait
        wait_for_playback_end: Resolves when the user ends media playback

    Returns:
        TaskResult

    Raises:
        ConfigurationError: If the provider configuration is incomplete
    """
    config.validate()
    return asyncio.run(run_with_browser(
        config,
        task,
        run_logger=run_logger,
        skip_signal=skip_signal,
        wait_for_playback_end=wait_for_playback_end,
    ))
