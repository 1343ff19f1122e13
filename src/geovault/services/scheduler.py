"""Rate-limited request scheduler.

This module provides the component that decides when each lookup is sent.
:meth:`RequestScheduler.submit` is the single entry point: it answers from
the cache when it can, attaches to an outstanding lookup for the same key
when there is one, and otherwise queues the key. A single drain task takes
keys off the queue in FIFO order whenever the rate limiter admits a
dispatch and runs each lookup as its own task.

Per-key failures (timeouts, transport errors, throttling past the requeue
limit) resolve the caller's future with ``None``; they are never raised
from :meth:`RequestScheduler.submit`.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

from geovault.core.clock import Clock
from geovault.services.cache import ResultCache
from geovault.services.fetcher import (
    FetchFailure,
    Fetcher,
    FetchResult,
    FetchSuccess,
    FetchThrottled,
)
from geovault.services.rate_limiter import Acquisition, RateLimiter
from geovault.services.state_machine import ProcessingStateTracker
from geovault.shared.constants import SchedulerDefaults
from geovault.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    create_fetch_error,
)
from geovault.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)

logger = logging.getLogger(__name__)


class ThrottlePolicy(str, Enum):
    """What happens to a lookup the backend throttled."""

    REQUEUE = SchedulerDefaults.THROTTLE_POLICY_REQUEUE
    DROP = SchedulerDefaults.THROTTLE_POLICY_DROP


@dataclass(frozen=True)
class QueueItem:
    """A queued lookup.

    Attributes:
        key: Lookup key
        enqueued_at: Clock timestamp of the original submit
        seq: Submit order, preserved across requeues
        attempts: Times this lookup was requeued after throttling
    """

    key: str
    enqueued_at: float
    seq: int
    attempts: int = 0


class RequestScheduler:
    """Queue, admission control and completion handling for lookups.

    All state is owned by the event loop the scheduler runs on; ``submit``
    and the drain loop are the only writers.

    Args:
        clock: Time source for pacing, cooldowns and timeouts
        fetcher: Lookup backend
        cache: Result cache consulted first and filled on success
        rate_limiter: Admission control
        tracker: Per-key state machine (a fresh one if omitted)
        fetch_timeout_ms: Upper bound for a single lookup
        throttle_policy: Requeue or drop throttled lookups
        default_throttle_cooldown_ms: Cooldown when a throttle has no reset hint
        max_throttle_cooldown_ms: Upper bound for any cooldown
        max_requeues: Times one lookup may be requeued before it resolves ``None``
    """

    def __init__(
        self,
        clock: Clock,
        fetcher: Fetcher,
        cache: ResultCache,
        rate_limiter: RateLimiter,
        tracker: ProcessingStateTracker | None = None,
        *,
        fetch_timeout_ms: float = SchedulerDefaults.FETCH_TIMEOUT_MS,
        throttle_policy: ThrottlePolicy | str = ThrottlePolicy.REQUEUE,
        default_throttle_cooldown_ms: float = SchedulerDefaults.DEFAULT_THROTTLE_COOLDOWN_MS,
        max_throttle_cooldown_ms: float = SchedulerDefaults.MAX_THROTTLE_COOLDOWN_MS,
        max_requeues: int = SchedulerDefaults.MAX_REQUEUES,
    ) -> None:
        if fetch_timeout_ms <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"fetch_timeout_ms must be positive, got: {fetch_timeout_ms}",
                context=ErrorContext(operation="scheduler_init"),
            )

        self._clock = clock
        self._fetcher = fetcher
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.tracker = tracker or ProcessingStateTracker()

        self.fetch_timeout_ms = fetch_timeout_ms
        self.throttle_policy = ThrottlePolicy(throttle_policy)
        self.default_throttle_cooldown_ms = default_throttle_cooldown_ms
        self.max_throttle_cooldown_ms = max_throttle_cooldown_ms
        self.max_requeues = max_requeues

        self._queue: deque[QueueItem] = deque()
        self._waiters: dict[str, list[asyncio.Future[Any]]] = {}
        self._seq = itertools.count()
        self._drain_task: asyncio.Task[None] | None = None
        self._dispatch_tasks: set[asyncio.Task[None]] = set()
        self._slot_released = asyncio.Event()
        self._closed = False

        self._stats = {
            "submitted": 0,
            "cache_hits": 0,
            "deduplicated": 0,
            "dispatched": 0,
            "succeeded": 0,
            "empty": 0,
            "failed": 0,
            "timeouts": 0,
            "throttled": 0,
            "requeued": 0,
            "dropped": 0,
        }

    def submit(self, key: str) -> asyncio.Future[Any]:
        """Request the value for ``key``.

        Never blocks. Must be called from the scheduler's event loop.

        Returns:
            Future resolving to the value, or ``None`` when the lookup failed
            or had nothing to report

        Raises:
            ApplicationError: If the scheduler has been closed
        """
        if self._closed:
            raise ApplicationError(
                code=ErrorCode.SCHEDULER_CLOSED,
                message="Scheduler is closed",
                context=ErrorContext(operation="submit", additional_data={"key": key}),
            )

        self._stats["submitted"] += 1
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        value = self.cache.get(key)
        if value is not None:
            self._stats["cache_hits"] += 1
            future.set_result(value)
            return future

        if not self.tracker.try_claim(key):
            self._stats["deduplicated"] += 1
            self._waiters.setdefault(key, []).append(future)
            return future

        self._waiters.setdefault(key, []).append(future)
        self._queue.append(QueueItem(key=key, enqueued_at=self._clock.now(), seq=next(self._seq)))
        self._ensure_draining()
        return future

    def pending_keys(self) -> list[str]:
        """Queued keys in dispatch order."""
        return [item.key for item in self._queue]

    def in_flight_keys(self) -> list[str]:
        """Keys dispatched and awaiting their result."""
        queued = {item.key for item in self._queue}
        return [key for key in self.tracker.active_keys() if key not in queued]

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        """No queued and no in-flight lookups."""
        return not self._queue and not self._dispatch_tasks

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics, including the rate limiter's."""
        return {
            **self._stats,
            "queue_length": len(self._queue),
            "in_flight": len(self._dispatch_tasks),
            "rate_limiter": self.rate_limiter.get_stats(),
        }

    async def aclose(self) -> None:
        """Stop dispatching, resolve outstanding futures with ``None``, flush the cache."""
        if self._closed:
            return
        self._closed = True

        tasks = [task for task in (self._drain_task, *self._dispatch_tasks) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._queue.clear()
        for futures in self._waiters.values():
            for future in futures:
                if not future.done():
                    future.set_result(None)
        self._waiters.clear()
        self.cache.close()

    def _ensure_draining(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._queue and not self._closed:
            acquisition = self.rate_limiter.try_acquire()
            if not acquisition.granted:
                await self._wait_for_admission(acquisition)
                continue

            item = self._queue.popleft()
            self.tracker.mark_in_flight(item.key)
            self._stats["dispatched"] += 1

            task = asyncio.get_running_loop().create_task(self._dispatch(item))
            self._dispatch_tasks.add(task)
            task.add_done_callback(self._dispatch_tasks.discard)

    async def _wait_for_admission(self, acquisition: Acquisition) -> None:
        if acquisition.retry_at is None:
            self._slot_released.clear()
            await self._slot_released.wait()
        else:
            await self._clock.sleep(max(0.0, acquisition.retry_at - self._clock.now()))

    async def _dispatch(self, item: QueueItem) -> None:
        started = self._clock.now()
        log_operation_start(
            logger,
            "fetch",
            {"key": item.key, "attempt": item.attempts + 1, "queued_ms": started - item.enqueued_at},
        )

        try:
            result = await self._fetch_with_timeout(item.key)
        finally:
            self.rate_limiter.release()
            self._slot_released.set()

        self._complete(item, result, started)

    async def _fetch_with_timeout(self, key: str) -> FetchResult:
        fetch_task = asyncio.ensure_future(self._fetcher.fetch(key, self.fetch_timeout_ms))
        timeout_task = asyncio.ensure_future(self._clock.sleep(self.fetch_timeout_ms))

        try:
            done, _ = await asyncio.wait(
                {fetch_task, timeout_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            timeout_task.cancel()
            if not fetch_task.done():
                fetch_task.cancel()

        if fetch_task not in done:
            return FetchFailure(f"timed out after {self.fetch_timeout_ms:.0f} ms", kind="timeout")

        if fetch_task.cancelled():
            return FetchFailure("lookup was cancelled")

        error = fetch_task.exception()
        if error is not None:
            log_operation_error(
                logger,
                create_fetch_error(
                    ErrorCode.FETCH_TRANSPORT_FAILED,
                    f"Fetcher raised {type(error).__name__}: {error!s}",
                    key,
                    original_error=error if isinstance(error, Exception) else None,
                ),
                operation="fetch",
            )
            return FetchFailure(f"{type(error).__name__}: {error!s}")

        result = fetch_task.result()
        if not isinstance(result, (FetchSuccess, FetchThrottled, FetchFailure)):
            log_operation_error(
                logger,
                create_fetch_error(
                    ErrorCode.FETCH_INVALID_RESPONSE,
                    f"Fetcher returned {type(result).__name__}",
                    key,
                ),
                operation="fetch",
            )
            return FetchFailure("invalid fetch result")
        return result

    def _complete(self, item: QueueItem, result: FetchResult, started: float) -> None:
        key = item.key

        if isinstance(result, FetchSuccess):
            if result.value is None:
                self._stats["empty"] += 1
            else:
                self.cache.set(key, result.value)
                self._stats["succeeded"] += 1
            self.tracker.mark_done(key)
            log_operation_success(
                logger,
                "fetch",
                self._clock.now() - started,
                result_info={"cached": result.value is not None},
                context={"key": key},
            )
            self._resolve(key, result.value)
            return

        if isinstance(result, FetchThrottled):
            self._on_throttled(item, result)
            return

        code = ErrorCode.FETCH_TIMEOUT if result.kind == "timeout" else ErrorCode.FETCH_TRANSPORT_FAILED
        if result.kind == "timeout":
            self._stats["timeouts"] += 1
        self._stats["failed"] += 1
        log_operation_error(
            logger,
            create_fetch_error(code, f"Lookup failed: {result.reason}", key),
            operation="fetch",
            level=logging.WARNING,
        )
        self.tracker.mark_failed(key)
        self._resolve(key, None)

    def _on_throttled(self, item: QueueItem, result: FetchThrottled) -> None:
        key = item.key
        now = self._clock.now()
        self._stats["throttled"] += 1

        until = result.reset_at if result.reset_at is not None else now + self.default_throttle_cooldown_ms
        until = min(until, now + self.max_throttle_cooldown_ms)
        self.rate_limiter.trip(until)

        requeue = self.throttle_policy is ThrottlePolicy.REQUEUE and item.attempts < self.max_requeues
        log_operation_error(
            logger,
            create_fetch_error(
                ErrorCode.FETCH_THROTTLED,
                f"Lookup throttled, {'requeued' if requeue else 'dropped'}",
                key,
            ),
            operation="fetch",
            additional_context={"blocked_until": until, "attempts": item.attempts + 1},
            level=logging.WARNING,
        )

        if requeue:
            self.tracker.mark_requeued(key)
            self._requeue(
                QueueItem(key=key, enqueued_at=item.enqueued_at, seq=item.seq, attempts=item.attempts + 1),
            )
            self._stats["requeued"] += 1
            self._ensure_draining()
            return

        self._stats["dropped"] += 1
        self.tracker.mark_failed(key)
        self._resolve(key, None)

    def _requeue(self, item: QueueItem) -> None:
        # Keep the queue in submit order; a requeued item goes ahead of
        # everything submitted after it.
        for index, queued in enumerate(self._queue):
            if queued.seq > item.seq:
                self._queue.insert(index, item)
                return
        self._queue.append(item)

    def _resolve(self, key: str, value: Any) -> None:
        # Each waiter gets its own copy of the value.
        self.tracker.release(key)
        for future in self._waiters.pop(key, []):
            if not future.done():
                future.set_result(copy.deepcopy(value))


__all__ = ["QueueItem", "RequestScheduler", "ThrottlePolicy"]
