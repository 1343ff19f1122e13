"""
Pytest configuration and shared fixtures for GeoVault tests.

The scheduler, rate limiter, cache and debounce timer all take an injected
clock. ``FakeClock`` keeps virtual time that only moves when a test calls
``advance``; ``ScriptedFetcher`` answers lookups from per-key scripts and
records when each lookup was dispatched.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Generator
from dataclasses import dataclass
from typing import Any, Callable

import pytest

from geovault.config.loader import set_config
from geovault.services.cache import ResultCache
from geovault.services.fetcher import FetchResult, FetchSuccess
from geovault.services.rate_limiter import RateLimiter
from geovault.services.scheduler import RequestScheduler
from geovault.services.storage import MemoryStore
from geovault.shared.constants import Logging

SETTLE_ITERATIONS = 100


async def settle() -> None:
    """Let every ready task run until the event loop is quiet."""
    for _ in range(SETTLE_ITERATIONS):
        await asyncio.sleep(0)


class _FakeTimer:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Virtual millisecond clock with a timer heap."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[tuple[float, int, _FakeTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _FakeTimer:
        timer = _FakeTimer(callback)
        heapq.heappush(self._timers, (self._now + max(0.0, delay_ms), next(self._seq), timer))
        return timer

    async def sleep(self, delay_ms: float) -> None:
        future = asyncio.get_running_loop().create_future()

        def wake() -> None:
            if not future.done():
                future.set_result(None)

        timer = self.call_later(delay_ms, wake)
        try:
            await future
        finally:
            timer.cancel()

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)

    async def advance(self, delta_ms: float) -> None:
        """Move time forward, firing due timers in order and settling after each."""
        target = self._now + delta_ms
        await settle()
        while self._timers and self._timers[0][0] <= target:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = max(self._now, when)
            timer.callback()
            await settle()
        self._now = target
        await settle()

    async def advance_to(self, timestamp: float) -> None:
        await self.advance(max(0.0, timestamp - self._now))


@dataclass(frozen=True)
class Delayed:
    """Scripted result delivered after ``delay_ms`` of virtual time."""

    delay_ms: float
    result: Any


HANG = object()


class ScriptedFetcher:
    """Fetcher double with per-key scripts.

    A script entry is a fetch result, an exception to raise, a ``Delayed``
    result, or ``HANG`` (never answers). Keys without a script succeed at
    once with ``{"location": "<key>-land"}``. ``hold(key)`` makes the next
    lookup for ``key`` wait for a future the test resolves.
    """

    Delayed = Delayed
    HANG = HANG

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._scripts: dict[str, list[Any]] = {}
        self._gates: dict[str, asyncio.Future[Any]] = {}

    @staticmethod
    def value_for(key: str) -> dict[str, Any]:
        return {"location": f"{key}-land"}

    def script(self, key: str, *results: Any) -> None:
        self._scripts.setdefault(key, []).extend(results)

    def hold(self, key: str) -> asyncio.Future[Any]:
        gate: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._gates[key] = gate
        return gate

    def call_count(self, key: str | None = None) -> int:
        if key is None:
            return len(self.calls)
        return sum(1 for called, _ in self.calls if called == key)

    def dispatch_times(self, key: str | None = None) -> list[float]:
        return [at for called, at in self.calls if key is None or called == key]

    async def fetch(self, key: str, timeout_ms: float) -> FetchResult:
        self.calls.append((key, self.clock.now()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if key in self._gates:
                result = await self._gates.pop(key)
            elif self._scripts.get(key):
                result = self._scripts[key].pop(0)
            else:
                result = FetchSuccess(self.value_for(key))

            if isinstance(result, Delayed):
                await self.clock.sleep(result.delay_ms)
                result = result.result
            if result is HANG:
                await asyncio.get_running_loop().create_future()
            if isinstance(result, BaseException):
                raise result
            return result
        finally:
            self.in_flight -= 1


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None, None, None]:
    """Keep package logging and the settings singleton test-local."""
    yield
    package_logger = logging.getLogger(Logging.ROOT_LOGGER)
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    set_config(None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000_000.0)


@pytest.fixture
def fetcher(clock: FakeClock) -> ScriptedFetcher:
    return ScriptedFetcher(clock)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_scheduler(clock: FakeClock, fetcher: ScriptedFetcher) -> Callable[..., RequestScheduler]:
    """Factory for schedulers on the fake clock (2000 ms interval, 2 slots by default)."""

    def _make(
        *,
        min_interval_ms: float = 2000,
        max_concurrent: int = 2,
        store: MemoryStore | None = None,
        ttl_ms: float = 30 * 24 * 3600 * 1000,
        **kwargs: Any,
    ) -> RequestScheduler:
        cache = ResultCache(clock, store=store, ttl_ms=ttl_ms)
        limiter = RateLimiter(clock, min_interval_ms=min_interval_ms, max_concurrent=max_concurrent)
        return RequestScheduler(clock, fetcher, cache, limiter, **kwargs)

    return _make
