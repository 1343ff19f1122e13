"""Injected time source.

Every time read and every delayed callback in the scheduler, rate limiter,
cache and debounce timer goes through a :class:`Clock`. Production code uses
:class:`SystemClock`; tests substitute a virtual clock so dispatch timing is
fully predictable.

All values are milliseconds.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Protocol


class TimerHandle(Protocol):
    """Handle of a scheduled callback."""

    def cancel(self) -> None: ...


class Clock(Protocol):
    """Time source and callback scheduler."""

    def now(self) -> float:
        """Current timestamp in milliseconds."""
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once ``delay_ms`` has elapsed."""
        ...

    async def sleep(self, delay_ms: float) -> None:
        """Suspend the current task for ``delay_ms``."""
        ...


class SystemClock:
    """Wall-clock time with timers on the running asyncio event loop."""

    def now(self) -> float:
        return time.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000.0)


__all__ = ["Clock", "SystemClock", "TimerHandle"]
