"""Per-key processing state.

This module tracks where each key is in its lookup lifecycle and prevents
duplicate concurrent work for the same key::

    IDLE -> QUEUED -> IN_FLIGHT -> DONE | FAILED -> IDLE

The only other edge is ``IN_FLIGHT -> QUEUED``, taken when a throttled
lookup is put back on the queue; it keeps the original claim.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from geovault.shared.errors import ErrorContext, InvariantViolationError

logger = logging.getLogger(__name__)


class ProcessingState(Enum):
    """Lookup lifecycle states."""

    IDLE = "idle"
    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Queued or in flight: a lookup for the key is outstanding."""
        return self in (ProcessingState.QUEUED, ProcessingState.IN_FLIGHT)


StateListener = Callable[[str, ProcessingState, ProcessingState], None]

_TRANSITIONS: dict[ProcessingState, frozenset[ProcessingState]] = {
    ProcessingState.IDLE: frozenset({ProcessingState.QUEUED}),
    ProcessingState.QUEUED: frozenset({ProcessingState.IN_FLIGHT}),
    ProcessingState.IN_FLIGHT: frozenset(
        {ProcessingState.DONE, ProcessingState.FAILED, ProcessingState.QUEUED},
    ),
    ProcessingState.DONE: frozenset({ProcessingState.IDLE}),
    ProcessingState.FAILED: frozenset({ProcessingState.IDLE}),
}


class ProcessingStateTracker:
    """State machine per key.

    Keys without a recorded state are ``IDLE``. Listeners registered with
    :meth:`subscribe` observe every transition; they never drive it.
    """

    def __init__(self) -> None:
        self._states: dict[str, ProcessingState] = {}
        self._listeners: list[StateListener] = []

    def state_of(self, key: str) -> ProcessingState:
        return self._states.get(key, ProcessingState.IDLE)

    def is_active(self, key: str) -> bool:
        return self.state_of(key).is_active

    def active_keys(self) -> list[str]:
        return [key for key, state in self._states.items() if state.is_active]

    def try_claim(self, key: str) -> bool:
        """Claim ``key`` for a new lookup.

        Returns:
            True if the key moved ``IDLE -> QUEUED``; False if a lookup for
            it is already queued or in flight

        Raises:
            InvariantViolationError: If the key finished but was never released
        """
        current = self.state_of(key)
        if current.is_active:
            return False
        self._transition(key, ProcessingState.QUEUED)
        return True

    def mark_in_flight(self, key: str) -> None:
        self._transition(key, ProcessingState.IN_FLIGHT)

    def mark_requeued(self, key: str) -> None:
        """Put an in-flight key back in the queue without a new claim."""
        if self.state_of(key) is not ProcessingState.IN_FLIGHT:
            self._violation(key, ProcessingState.QUEUED)
        self._transition(key, ProcessingState.QUEUED)

    def mark_done(self, key: str) -> None:
        self._transition(key, ProcessingState.DONE)

    def mark_failed(self, key: str) -> None:
        self._transition(key, ProcessingState.FAILED)

    def release(self, key: str) -> None:
        """Return a finished key to ``IDLE`` so it can be looked up again."""
        self._transition(key, ProcessingState.IDLE)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Observe transitions.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, key: str, new: ProcessingState) -> None:
        old = self.state_of(key)
        if new not in _TRANSITIONS[old]:
            self._violation(key, new)

        if new is ProcessingState.IDLE:
            self._states.pop(key, None)
        else:
            self._states[key] = new

        logger.debug("Key '%s': %s -> %s", key, old.value, new.value)
        for listener in list(self._listeners):
            listener(key, old, new)

    def _violation(self, key: str, new: ProcessingState) -> None:
        old = self.state_of(key)
        raise InvariantViolationError(
            f"Illegal state transition for key '{key}': {old.value} -> {new.value}",
            ErrorContext(
                operation="state_transition",
                additional_data={"key": key, "from": old.value, "to": new.value},
            ),
        )


__all__ = ["ProcessingState", "ProcessingStateTracker", "StateListener"]
