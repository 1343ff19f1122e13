"""Request scheduler configuration model.

This module contains the configuration for outbound lookup pacing,
concurrency, timeouts and the reaction to server-imposed throttling.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from geovault.shared.constants import SchedulerDefaults


class SchedulerSettings(BaseModel):
    """Scheduler configuration.

    All durations are milliseconds on the injected clock.
    """

    min_interval_ms: float = Field(
        default=SchedulerDefaults.MIN_INTERVAL_MS,
        ge=0,
        description="Minimum spacing between dispatches sharing a concurrency slot",
    )
    max_concurrent: int = Field(
        default=SchedulerDefaults.MAX_CONCURRENT,
        gt=0,
        description="Maximum number of lookups in flight at once",
    )
    fetch_timeout_ms: float = Field(
        default=SchedulerDefaults.FETCH_TIMEOUT_MS,
        gt=0,
        description="Upper bound for a single lookup",
    )
    throttle_policy: Literal["requeue", "drop"] = Field(
        default=SchedulerDefaults.THROTTLE_POLICY,
        description="Requeue a throttled key at the queue front, or resolve it with no result",
    )
    default_throttle_cooldown_ms: float = Field(
        default=SchedulerDefaults.DEFAULT_THROTTLE_COOLDOWN_MS,
        ge=0,
        description="Cooldown applied when a throttle signal has no reset hint",
    )
    max_throttle_cooldown_ms: float = Field(
        default=SchedulerDefaults.MAX_THROTTLE_COOLDOWN_MS,
        gt=0,
        description="Upper bound for any throttle cooldown",
    )
    max_requeues: int = Field(
        default=SchedulerDefaults.MAX_REQUEUES,
        ge=0,
        description="Times a single request may be requeued after throttling",
    )

    @model_validator(mode="after")
    def _check_cooldowns(self) -> SchedulerSettings:
        if self.default_throttle_cooldown_ms > self.max_throttle_cooldown_ms:
            msg = "default_throttle_cooldown_ms must not exceed max_throttle_cooldown_ms"
            raise ValueError(msg)
        return self


__all__ = ["SchedulerSettings"]
