"""
Progress tracking for the agent loop.

Tracks the step counter, consecutive turn failures and the completion/stop
flags, and derives why a run ended.
"""

import logging
from dataclasses import replace
from typing import Optional

from .types import ExitReason, ProgressState

logger = logging.getLogger(__name__)


class ProgressTracker:
    """State machine over step count and consecutive failures.

    States are running, done and stopped. ``mark_complete`` moves a run to
    done; ``mark_failed``, ``mark_interrupted``, a failure-threshold breach or
    step-budget exhaustion move it to stopped. Neither terminal state is ever
    left again.
    """

    def __init__(self, max_steps: int = 100, max_failures: int = 3):
        """Initialize the tracker.

        Args:
            max_steps: Maximum number of iterations (must be positive)
            max_failures: Consecutive turn failures that stop the run
        """
        if max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {max_steps}")
        if max_failures <= 0:
            raise ValueError(f"max_failures must be positive, got {max_failures}")

        self.max_failures = max_failures
        self._state = ProgressState(max_steps=max_steps)

    @property
    def state(self) -> ProgressState:
        """Read-only copy of the current state."""
        return replace(self._state)

    @property
    def current_step(self) -> int:
        return self._state.current_step

    @property
    def max_steps(self) -> int:
        return self._state.max_steps

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def is_done(self) -> bool:
        return self._state.is_done

    @property
    def should_stop(self) -> bool:
        return self._state.should_stop

    def advance(self) -> None:
        """Start a new iteration.

        Callers check should_continue() first; advancing a stopped run is
        not guarded here.
        """
        self._state.current_step += 1

    def record_success(self) -> None:
        """Record a turn that completed without a transport failure."""
        self._state.consecutive_failures = 0

    def record_failure(self, threshold: Optional[int] = None) -> None:
        """Record a failed turn.

        Args:
            threshold: Failures that stop the run (defaults to max_failures)
        """
        limit = self.max_failures if threshold is None else threshold
        self._state.consecutive_failures += 1

        if self._state.consecutive_failures >= limit:
            logger.debug(
                f"Failure threshold reached ({self._state.consecutive_failures}/{limit})"
            )
            self._state.should_stop = True

    def mark_complete(self) -> None:
        """Mark the task as done. Idempotent."""
        self._state.is_done = True
        self._state.should_stop = True

    def mark_failed(self) -> None:
        """Stop the run without marking it done."""
        self._state.should_stop = True

    def mark_interrupted(self) -> None:
        """Stop the run because the user interrupted it."""
        self._state.interrupted = True
        self._state.should_stop = True

    def should_continue(self) -> bool:
        """Check whether another iteration may start."""
        if self._state.should_stop:
            return False
        if self._state.is_done:
            return False
        if self._state.current_step >= self._state.max_steps:
            return False
        return True

    def is_last_step(self) -> bool:
        """Check whether the model must be forced to a verdict.

        True from step max_steps - 1 onward.
        """
        return self._state.current_step >= self._state.max_steps - 1

    def exit_reason(self) -> Optional[ExitReason]:
        """Derive why the run ended.

        Returns:
            The exit reason, or None while the run is still in progress
        """
        if self._state.is_done:
            return ExitReason.SUCCESS
        if self._state.interrupted:
            return ExitReason.USER_INTERRUPT
        if self._state.consecutive_failures >= self.max_failures:
            return ExitReason.MAX_FAILURES
        if self._state.current_step >= self._state.max_steps:
            return ExitReason.MAX_STEPS
        if self._state.should_stop:
            return ExitReason.ERROR
        return None

    def progress_percent(self) -> int:
        """Share of the step budget used, rounded to a whole percent."""
        return round(self._state.current_step / self._state.max_steps * 100)

    def summary(self) -> str:
        """One-line state summary for console output."""
        return (
            f"Step {self._state.current_step}/{self._state.max_steps} "
            f"({self.progress_percent()}%) | "
            f"Consecutive failures: {self._state.consecutive_failures}/{self.max_failures}"
        )
