"""Unit tests for ProcessingStateTracker."""

import pytest

from geovault.services.state_machine import ProcessingState, ProcessingStateTracker
from geovault.shared.errors import ErrorCode, InvariantViolationError


class TestProcessingStateTracker:
    """Per-key lifecycle: IDLE -> QUEUED -> IN_FLIGHT -> DONE|FAILED -> IDLE."""

    def setup_method(self) -> None:
        self.tracker = ProcessingStateTracker()

    def test_unknown_key_is_idle(self) -> None:
        assert self.tracker.state_of("alice") is ProcessingState.IDLE
        assert not self.tracker.is_active("alice")

    def test_full_lifecycle(self) -> None:
        assert self.tracker.try_claim("alice") is True
        assert self.tracker.state_of("alice") is ProcessingState.QUEUED

        self.tracker.mark_in_flight("alice")
        assert self.tracker.state_of("alice") is ProcessingState.IN_FLIGHT

        self.tracker.mark_done("alice")
        assert self.tracker.state_of("alice") is ProcessingState.DONE

        self.tracker.release("alice")
        assert self.tracker.state_of("alice") is ProcessingState.IDLE

    def test_second_claim_reports_already_active(self) -> None:
        assert self.tracker.try_claim("alice") is True
        assert self.tracker.try_claim("alice") is False

        self.tracker.mark_in_flight("alice")
        assert self.tracker.try_claim("alice") is False

    def test_failed_key_can_be_claimed_again_after_release(self) -> None:
        self.tracker.try_claim("alice")
        self.tracker.mark_in_flight("alice")
        self.tracker.mark_failed("alice")
        self.tracker.release("alice")

        assert self.tracker.try_claim("alice") is True

    def test_keys_are_case_sensitive(self) -> None:
        self.tracker.try_claim("Alice")

        assert self.tracker.try_claim("alice") is True
        assert sorted(self.tracker.active_keys()) == ["Alice", "alice"]

    @pytest.mark.parametrize(
        "steps",
        [
            ["mark_in_flight"],
            ["mark_done"],
            ["try_claim", "mark_done"],
            ["try_claim", "release"],
            ["try_claim", "mark_in_flight", "release"],
            ["try_claim", "mark_in_flight", "mark_done", "mark_failed"],
        ],
    )
    def test_skipping_a_step_is_an_invariant_violation(self, steps) -> None:
        *setup, last = steps
        for step in setup:
            getattr(self.tracker, step)("alice")

        with pytest.raises(InvariantViolationError) as exc_info:
            getattr(self.tracker, last)("alice")

        assert exc_info.value.code == ErrorCode.INVARIANT_VIOLATION

    def test_claiming_a_finished_unreleased_key_is_an_invariant_violation(self) -> None:
        self.tracker.try_claim("alice")
        self.tracker.mark_in_flight("alice")
        self.tracker.mark_done("alice")

        with pytest.raises(InvariantViolationError):
            self.tracker.try_claim("alice")

    def test_requeue_keeps_the_claim(self) -> None:
        self.tracker.try_claim("alice")
        self.tracker.mark_in_flight("alice")

        self.tracker.mark_requeued("alice")

        assert self.tracker.state_of("alice") is ProcessingState.QUEUED
        assert self.tracker.try_claim("alice") is False

    def test_requeue_requires_in_flight(self) -> None:
        self.tracker.try_claim("alice")

        with pytest.raises(InvariantViolationError):
            self.tracker.mark_requeued("alice")

    def test_subscribers_observe_transitions(self) -> None:
        seen = []
        unsubscribe = self.tracker.subscribe(lambda key, old, new: seen.append((key, old, new)))

        self.tracker.try_claim("alice")
        self.tracker.mark_in_flight("alice")
        unsubscribe()
        self.tracker.mark_done("alice")

        assert seen == [
            ("alice", ProcessingState.IDLE, ProcessingState.QUEUED),
            ("alice", ProcessingState.QUEUED, ProcessingState.IN_FLIGHT),
        ]
