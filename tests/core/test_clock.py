"""Tests for the system clock."""

import asyncio
import time

import pytest

from geovault.core.clock import SystemClock


class TestSystemClock:
    """SystemClock reads wall time in milliseconds and uses loop timers."""

    def test_now_is_wall_clock_milliseconds(self) -> None:
        before = time.time() * 1000
        now = SystemClock().now()
        after = time.time() * 1000

        assert before <= now <= after

    @pytest.mark.asyncio
    async def test_call_later_runs_callback_on_the_loop(self) -> None:
        clock = SystemClock()
        done = asyncio.Event()

        clock.call_later(1, done.set)

        await asyncio.wait_for(done.wait(), timeout=1)
        assert done.is_set()

    @pytest.mark.asyncio
    async def test_cancelled_callback_does_not_run(self) -> None:
        clock = SystemClock()
        fired = []

        handle = clock.call_later(1, lambda: fired.append(True))
        handle.cancel()
        await asyncio.sleep(0.02)

        assert fired == []

    @pytest.mark.asyncio
    async def test_sleep_suspends_for_the_delay(self) -> None:
        clock = SystemClock()
        start = clock.now()

        await clock.sleep(10)

        assert clock.now() - start >= 9
