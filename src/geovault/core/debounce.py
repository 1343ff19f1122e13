"""Debounce timer.

A :class:`DebounceTimer` delays an action until a quiet period has elapsed
since the last trigger. Each :meth:`DebounceTimer.trigger` call restarts the
countdown, so a burst of triggers results in a single callback.
"""

from __future__ import annotations

import logging
from typing import Callable

from geovault.core.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)


class DebounceTimer:
    """Reset-on-trigger, fire-after-idle timer driven by a :class:`Clock`.

    Args:
        clock: Time source used to schedule the callback
        delay_ms: Quiet period before the callback runs
        callback: Action to run once the timer fires
    """

    def __init__(self, clock: Clock, delay_ms: float, callback: Callable[[], None]) -> None:
        if delay_ms < 0:
            msg = f"delay_ms must not be negative, got: {delay_ms}"
            raise ValueError(msg)

        self._clock = clock
        self.delay_ms = delay_ms
        self._callback = callback
        self._handle: TimerHandle | None = None
        self.fire_count = 0

    @property
    def pending(self) -> bool:
        """Whether a callback is scheduled and has not run yet."""
        return self._handle is not None

    def trigger(self) -> None:
        """Restart the countdown."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._clock.call_later(self.delay_ms, self._fire)

    def cancel(self) -> None:
        """Drop the scheduled callback, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Run a pending callback immediately.

        Returns:
            True if a callback was pending and has been run
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        self._handle = None
        self.fire_count += 1
        logger.debug("Debounce timer fired after %.0f ms of inactivity", self.delay_ms)
        self._callback()
