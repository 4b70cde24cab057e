"""
Tests for the progress tracker state machine.
"""

import pytest

from browserbot.progress import ProgressTracker
from browserbot.types import ExitReason


class TestProgressTrackerBasics:
    """Construction and counters."""

    def test_rejects_non_positive_budget(self):
        """max_steps and max_failures must be positive."""
        with pytest.raises(ValueError):
            ProgressTracker(max_steps=0)
        with pytest.raises(ValueError):
            ProgressTracker(max_steps=5, max_failures=0)

    def test_advance_increments_step(self):
        tracker = ProgressTracker(max_steps=5)
        tracker.advance()
        tracker.advance()
        assert tracker.current_step == 2
        assert tracker.max_steps == 5

    def test_state_is_a_copy(self):
        """Mutating the returned state does not touch the tracker."""
        tracker = ProgressTracker(max_steps=5)
        state = tracker.state
        state.current_step = 99
        assert tracker.current_step == 0

    def test_summary_format(self):
        tracker = ProgressTracker(max_steps=4, max_failures=3)
        tracker.advance()
        tracker.record_failure()
        assert tracker.summary() == "Step 1/4 (25%) | Consecutive failures: 1/3"


class TestProgressTrackerStops:
    """Stop conditions and exit reasons."""

    def test_in_progress_has_no_exit_reason(self):
        tracker = ProgressTracker(max_steps=5)
        tracker.advance()
        assert tracker.should_continue()
        assert tracker.exit_reason() is None

    def test_step_budget_exhaustion(self):
        """Exactly max_steps iterations run before the budget stops the loop."""
        for max_steps in range(1, 8):
            tracker = ProgressTracker(max_steps=max_steps)
            iterations = 0
            while tracker.should_continue():
                tracker.advance()
                tracker.record_success()
                iterations += 1
            assert iterations == max_steps
            assert tracker.exit_reason() == ExitReason.MAX_STEPS

    def test_failure_threshold_stops(self):
        tracker = ProgressTracker(max_steps=10, max_failures=2)
        tracker.advance()
        tracker.record_failure()
        assert tracker.should_continue()
        tracker.advance()
        tracker.record_failure()
        assert not tracker.should_continue()
        assert tracker.exit_reason() == ExitReason.MAX_FAILURES

    def test_success_resets_failures(self):
        tracker = ProgressTracker(max_steps=10, max_failures=2)
        tracker.record_failure()
        tracker.record_success()
        tracker.record_failure()
        assert tracker.consecutive_failures == 1
        assert tracker.should_continue()

    def test_explicit_threshold(self):
        """An explicit threshold overrides max_failures for that call."""
        tracker = ProgressTracker(max_steps=10, max_failures=5)
        tracker.record_failure(threshold=1)
        assert tracker.should_stop

    def test_mark_complete_is_terminal(self):
        tracker = ProgressTracker(max_steps=10)
        tracker.advance()
        tracker.mark_complete()
        tracker.mark_complete()
        tracker.record_failure()
        assert tracker.is_done
        assert not tracker.should_continue()
        assert tracker.exit_reason() == ExitReason.SUCCESS

    def test_mark_failed_reports_error(self):
        tracker = ProgressTracker(max_steps=10)
        tracker.advance()
        tracker.mark_failed()
        assert not tracker.is_done
        assert tracker.exit_reason() == ExitReason.ERROR

    def test_mark_interrupted(self):
        tracker = ProgressTracker(max_steps=10)
        tracker.advance()
        tracker.mark_interrupted()
        assert not tracker.should_continue()
        assert tracker.exit_reason() == ExitReason.USER_INTERRUPT


class TestLastStep:
    """Last-step detection."""

    def test_last_step_from_max_minus_one(self):
        tracker = ProgressTracker(max_steps=5)
        seen = []
        while tracker.should_continue():
            tracker.advance()
            seen.append(tracker.is_last_step())
            tracker.record_success()
        assert seen == [False, False, False, True, True]

    def test_single_step_budget_is_last_immediately(self):
        tracker = ProgressTracker(max_steps=1)
        tracker.advance()
        assert tracker.is_last_step()
