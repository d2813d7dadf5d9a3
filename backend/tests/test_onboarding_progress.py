"""Tests for the onboarding progress state machine (no database)."""

import pytest

from app.middleware.exceptions import ForbiddenTransitionError, ValidationFailedError
from app.models.onboarding import OnboardingPaymentStatus, OnboardingProgress
from app.schemas.onboarding import ProgressAction
from app.services.onboarding import apply_action


def _progress(*completed: int, current: int = 1) -> OnboardingProgress:
    progress = OnboardingProgress.fresh("user-1")
    for step in completed:
        progress.add_completed_step(step)
    progress.current_step = current
    return progress


@pytest.mark.unit
class TestProgressQueries:
    """Derived values on the progress row."""

    def test_fresh_state(self):
        """A new tracker sits on step 1 with nothing done."""
        progress = OnboardingProgress.fresh("user-1")
        assert progress.current_step == 1
        assert progress.completed_steps == []
        assert progress.payment_status == OnboardingPaymentStatus.PENDING
        assert progress.is_completed is False
        assert progress.completion_percentage() == 0

    def test_step_one_always_open(self):
        """Step 1 is reachable with nothing completed."""
        assert _progress().can_access_step(1)

    def test_gating_needs_every_earlier_step(self):
        """Step N opens only when 1..N-1 are all completed."""
        progress = _progress(1, 2, 4)
        assert progress.can_access_step(3)
        assert not progress.can_access_step(5)

    def test_completion_percentage_rounding(self):
        """Percentage is completed/7 rounded to two places."""
        assert _progress(1, 2, 3).completion_percentage() == 42.86
        assert _progress(1).completion_percentage() == 14.29

    def test_next_accessible_step(self):
        """First incomplete step, or 7 when everything is done."""
        assert _progress(1, 2, 4).next_accessible_step() == 3
        assert _progress(*range(1, 8)).next_accessible_step() == 7

    def test_completed_steps_stay_sorted_and_unique(self):
        """Adding a step twice keeps one copy, in order."""
        progress = _progress(3, 1, 2)
        progress.add_completed_step(2)
        assert progress.completed_steps == [1, 2, 3]

    def test_all_steps_marks_completed(self):
        """Completing all seven steps flips is_completed."""
        progress = _progress(*range(1, 8))
        assert progress.is_completed is True
        progress.remove_completed_step(4)
        assert progress.is_completed is False


@pytest.mark.unit
class TestApplyAction:
    """State-machine transitions."""

    def test_navigate_to_reachable_step(self):
        """Navigate moves current_step when the target is open."""
        progress = _progress(1, 2)
        apply_action(progress, ProgressAction.NAVIGATE, 3)
        assert progress.current_step == 3

    def test_navigate_to_locked_step(self):
        """Navigate to a locked step is forbidden and changes nothing."""
        progress = _progress(1)
        before = progress.last_updated
        with pytest.raises(ForbiddenTransitionError):
            apply_action(progress, ProgressAction.NAVIGATE, 4)
        assert progress.current_step == 1
        assert progress.last_updated == before

    def test_navigate_needs_target(self):
        """Navigate without a target step is a validation error."""
        with pytest.raises(ValidationFailedError):
            apply_action(_progress(), ProgressAction.NAVIGATE, None)

    def test_navigate_out_of_range(self):
        """Targets outside 1..7 are rejected."""
        with pytest.raises(ValidationFailedError):
            apply_action(_progress(), ProgressAction.NAVIGATE, 8)

    def test_complete_payment(self):
        """Completing payment finishes step 7 and the whole flow."""
        progress = _progress(1, 2, 3, 4, 5, 6, current=7)
        apply_action(progress, ProgressAction.COMPLETE_PAYMENT)
        assert progress.payment_status == OnboardingPaymentStatus.COMPLETED
        assert progress.completed_steps == [1, 2, 3, 4, 5, 6, 7]
        assert progress.is_completed is True
        assert progress.completion_percentage() == 100

    def test_complete_payment_with_open_steps(self):
        """Payment completes whatever earlier steps are still open."""
        progress = _progress(1, 2, 3)
        apply_action(progress, ProgressAction.COMPLETE_PAYMENT)
        assert progress.payment_status == OnboardingPaymentStatus.COMPLETED
        assert progress.completed_steps == [1, 2, 3, 7]
        assert progress.is_completed is True

    def test_fail_payment_retracts_step_seven(self):
        """A failed payment removes step 7 and clears completion."""
        progress = _progress(*range(1, 8), current=7)
        apply_action(progress, ProgressAction.FAIL_PAYMENT)
        assert progress.payment_status == OnboardingPaymentStatus.FAILED
        assert 7 not in progress.completed_steps
        assert progress.is_completed is False

    def test_reset(self):
        """Reset returns the tracker to its initial state."""
        progress = _progress(1, 2, 3, current=4)
        apply_action(progress, ProgressAction.RESET)
        assert progress.current_step == 1
        assert progress.completed_steps == []
        assert progress.payment_status == OnboardingPaymentStatus.PENDING
        assert progress.is_completed is False
