"""Scheduler and rate limiting constants."""

from __future__ import annotations

from .system import BASE_MINUTE, BASE_SECOND


class SchedulerDefaults:
    """Default scheduler configuration.

    All durations are in milliseconds.
    """

    MIN_INTERVAL_MS = 2 * BASE_SECOND
    MAX_CONCURRENT = 2
    FETCH_TIMEOUT_MS = 10 * BASE_SECOND

    # Throttle handling
    THROTTLE_POLICY_REQUEUE = "requeue"
    THROTTLE_POLICY_DROP = "drop"
    THROTTLE_POLICY = THROTTLE_POLICY_REQUEUE
    DEFAULT_THROTTLE_COOLDOWN_MS = 1 * BASE_MINUTE
    MAX_THROTTLE_COOLDOWN_MS = 15 * BASE_MINUTE
    MAX_REQUEUES = 5


class DispatchDefaults:
    """Default dispatch policy configuration."""

    MODE_AUTO = "auto"
    MODE_MANUAL = "manual"
    MODE = MODE_AUTO
    ENABLED = True


__all__ = ["DispatchDefaults", "SchedulerDefaults"]
