"""Dispatch admission control.

This module provides the rate limiter that gates every outbound lookup. It
enforces three rules at once:

- at most ``max_concurrent`` lookups are in flight,
- pacing: fewer than ``max_concurrent`` dispatches may have started within
  the last ``min_interval_ms`` (with a single slot this is exactly
  ``now - last_dispatch_at >= min_interval_ms``),
- while a server-imposed cooldown is active (``blocked_until``), nothing is
  dispatched at all.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any

from geovault.core.clock import Clock
from geovault.shared.constants import SchedulerDefaults
from geovault.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    InvariantViolationError,
)
from geovault.shared.logging import log_operation_success

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Acquisition:
    """Outcome of :meth:`RateLimiter.try_acquire`.

    Attributes:
        granted: Whether a dispatch slot was taken
        retry_at: When denied, the earliest timestamp a retry can succeed.
            ``None`` means the limit is concurrency and the caller should
            wait for a :meth:`RateLimiter.release`.
    """

    granted: bool
    retry_at: float | None = None


class RateLimiter:
    """Pacing, concurrency cap and throttling cooldown for dispatches.

    Not thread-safe: it is owned by a single scheduler running on one event
    loop.

    Args:
        clock: Time source
        min_interval_ms: Minimum spacing between dispatches sharing a slot
        max_concurrent: Maximum number of in-flight lookups
    """

    def __init__(
        self,
        clock: Clock,
        min_interval_ms: float = SchedulerDefaults.MIN_INTERVAL_MS,
        max_concurrent: int = SchedulerDefaults.MAX_CONCURRENT,
    ) -> None:
        context = ErrorContext(
            operation="rate_limiter_init",
            additional_data={"min_interval_ms": min_interval_ms, "max_concurrent": max_concurrent},
        )

        if max_concurrent <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"max_concurrent must be positive, got: {max_concurrent}",
                context=context,
            )

        if min_interval_ms < 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"min_interval_ms must not be negative, got: {min_interval_ms}",
                context=context,
            )

        self._clock = clock
        self.min_interval_ms = min_interval_ms
        self.max_concurrent = max_concurrent

        self.in_flight = 0
        self.last_dispatch_at: float | None = None
        self.blocked_until: float | None = None
        self._recent_dispatches: deque[float] = deque()

        self._granted = 0
        self._denied = 0
        self._trips = 0

        log_operation_success(
            logger=logger,
            operation="rate_limiter_init",
            duration_ms=0,
            context=context.additional_data,
        )

    def try_acquire(self) -> Acquisition:
        """Take a dispatch slot if every rule allows it.

        Returns:
            Granted acquisition, or the earliest retry time when denied
        """
        now = self._clock.now()

        if self.blocked_until is not None:
            if now < self.blocked_until:
                self._denied += 1
                return Acquisition(granted=False, retry_at=self.blocked_until)
            logger.info("Throttling cooldown ended, resuming dispatches")
            self.blocked_until = None

        if self.in_flight >= self.max_concurrent:
            self._denied += 1
            return Acquisition(granted=False)

        window = self._recent_dispatches
        while window and window[0] + self.min_interval_ms <= now:
            window.popleft()

        if len(window) >= self.max_concurrent:
            self._denied += 1
            return Acquisition(granted=False, retry_at=window[0] + self.min_interval_ms)

        self.in_flight += 1
        self.last_dispatch_at = now
        window.append(now)
        self._granted += 1
        return Acquisition(granted=True)

    def release(self) -> None:
        """Return a slot after a dispatched lookup completed.

        Raises:
            InvariantViolationError: If no lookup is in flight
        """
        if self.in_flight <= 0:
            raise InvariantViolationError(
                "Rate limiter released with no lookup in flight",
                ErrorContext(operation="rate_limiter_release"),
            )
        self.in_flight -= 1

    def trip(self, until: float) -> None:
        """Suppress every dispatch until ``until``.

        An earlier cooldown never shortens one that is already active.
        """
        if self.blocked_until is None or until > self.blocked_until:
            self.blocked_until = until
        self._trips += 1
        logger.warning(
            "Rate limiter tripped, dispatches suspended for %.0f ms",
            max(0.0, self.blocked_until - self._clock.now()),
            extra={
                "operation": "rate_limiter_trip",
                "context": {"blocked_until": self.blocked_until},
            },
        )

    @property
    def is_blocked(self) -> bool:
        """Whether a throttling cooldown is active."""
        return self.blocked_until is not None and self._clock.now() < self.blocked_until

    def get_stats(self) -> dict[str, Any]:
        """Get limiter statistics."""
        return {
            "in_flight": self.in_flight,
            "max_concurrent": self.max_concurrent,
            "min_interval_ms": self.min_interval_ms,
            "last_dispatch_at": self.last_dispatch_at,
            "blocked_until": self.blocked_until,
            "granted": self._granted,
            "denied": self._denied,
            "trips": self._trips,
        }

    def reset(self) -> None:
        """Forget pacing history, cooldown and counters.

        In-flight lookups are still accounted for, their releases are pending.
        """
        self.last_dispatch_at = None
        self.blocked_until = None
        self._recent_dispatches.clear()
        self._granted = 0
        self._denied = 0
        self._trips = 0


__all__ = ["Acquisition", "RateLimiter"]
