"""Dispatch policy (mode controller).

This module decides what happens when a key becomes visible to the UI layer
and has no cached value:

- ``Mode.EAGER`` ("auto"): the key is submitted to the scheduler at once.
- ``Mode.DEFERRED`` ("manual"): the key is offered as "fetch available" and
  only an explicit :meth:`DispatchPolicy.trigger_fetch` for that key
  submits it.

A live cache entry is always shown without involving the scheduler, in
either mode. The UI layer observes :class:`DisplayUpdate` events and never
drives the policy's state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from geovault.services.scheduler import RequestScheduler
from geovault.shared.constants import DispatchDefaults

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    """Process-wide dispatch mode."""

    EAGER = DispatchDefaults.MODE_AUTO
    DEFERRED = DispatchDefaults.MODE_MANUAL


class DisplayState(Enum):
    """What the UI layer shows for a surfaced key."""

    CACHED = "cached"
    LOADING = "loading"
    FETCH_AVAILABLE = "fetch_available"
    FAILED = "failed"
    HIDDEN = "hidden"


@dataclass(frozen=True)
class DisplayUpdate:
    """A display change for one key; ``value`` is set for ``CACHED``."""

    key: str
    state: DisplayState
    value: Any = None


DisplayListener = Callable[[DisplayUpdate], None]
ModeListener = Callable[[Mode], None]


class DispatchPolicy:
    """Eager/deferred dispatch on top of a :class:`RequestScheduler`.

    Args:
        scheduler: Scheduler that owns the cache and state tracker
        mode: Initial mode
        enabled: Whether surfaced keys are processed at all
    """

    def __init__(
        self,
        scheduler: RequestScheduler,
        mode: Mode | str = Mode.EAGER,
        *,
        enabled: bool = DispatchDefaults.ENABLED,
    ) -> None:
        self._scheduler = scheduler
        self._mode = Mode(mode)
        self._enabled = enabled
        self._display: dict[str, DisplayState] = {}
        self._display_listeners: list[DisplayListener] = []
        self._mode_listeners: list[ModeListener] = []

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def enabled(self) -> bool:
        return self._enabled

    def display_state(self, key: str) -> DisplayState | None:
        """Current display state of a surfaced key, ``None`` if not surfaced."""
        return self._display.get(key)

    def surfaced_keys(self) -> list[str]:
        return list(self._display)

    def should_fetch(self, key: str) -> bool:
        """Whether surfacing ``key`` right now would submit a lookup."""
        return self._enabled and self._mode is Mode.EAGER and not self._scheduler.cache.has(key)

    def notify_key_visible(self, key: str) -> DisplayState | None:
        """A key became visible to the UI layer.

        Returns:
            The key's new display state, or ``None`` while disabled
        """
        if not self._enabled:
            return None

        value = self._scheduler.cache.get(key)
        if value is not None:
            self._emit(key, DisplayState.CACHED, value)
        elif self._mode is Mode.EAGER or self._scheduler.tracker.is_active(key):
            # In deferred mode this only attaches to a lookup already running
            self._submit(key)
        else:
            self._emit(key, DisplayState.FETCH_AVAILABLE)

        return self._display.get(key)

    def trigger_fetch(self, key: str) -> asyncio.Future[Any]:
        """Explicitly request a lookup for exactly this key, in any mode.

        While disabled nothing is submitted and the future resolves with
        ``None``.
        """
        if not self._enabled:
            ignored: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
            ignored.set_result(None)
            return ignored

        logger.debug("Explicit lookup requested for '%s'", key)
        return self._submit(key)

    def forget(self, key: str) -> None:
        """The key is no longer visible; stop tracking its display."""
        self._display.pop(key, None)

    def set_mode(self, mode: Mode | str) -> None:
        """Switch mode and reconcile surfaced keys.

        Deferred to eager submits every "fetch available" key without a
        cache entry once. Eager to deferred leaves running lookups alone and
        turns every other key without a cache entry back into "fetch
        available".
        """
        new_mode = Mode(mode)
        if new_mode is self._mode:
            return

        old_mode = self._mode
        self._mode = new_mode
        logger.info("Dispatch mode changed: %s -> %s", old_mode.value, new_mode.value)

        if self._enabled:
            if new_mode is Mode.EAGER:
                self._reconcile_to_eager()
            else:
                self._reconcile_to_deferred()

        for listener in list(self._mode_listeners):
            listener(new_mode)

    def set_enabled(self, enabled: bool) -> None:
        """Turn processing on or off; turning it off hides every surfaced key."""
        if enabled == self._enabled:
            return
        self._enabled = enabled
        logger.info("Dispatch %s", "enabled" if enabled else "disabled")

        if not enabled:
            for key in list(self._display):
                self._emit(key, DisplayState.HIDDEN)
            self._display.clear()

    def on_display(self, listener: DisplayListener) -> Callable[[], None]:
        """Observe display updates. Returns a callable that unsubscribes."""
        self._display_listeners.append(listener)
        return lambda: self._remove(self._display_listeners, listener)

    def on_mode_change(self, listener: ModeListener) -> Callable[[], None]:
        """Observe mode changes. Returns a callable that unsubscribes."""
        self._mode_listeners.append(listener)
        return lambda: self._remove(self._mode_listeners, listener)

    def _reconcile_to_eager(self) -> None:
        for key, state in list(self._display.items()):
            if state is not DisplayState.FETCH_AVAILABLE:
                continue
            value = self._scheduler.cache.get(key)
            if value is not None:
                self._emit(key, DisplayState.CACHED, value)
            else:
                self._submit(key)

    def _reconcile_to_deferred(self) -> None:
        cache = self._scheduler.cache
        tracker = self._scheduler.tracker
        for key, state in list(self._display.items()):
            if state is DisplayState.CACHED or tracker.is_active(key):
                continue
            value = cache.get(key)
            if value is not None:
                self._emit(key, DisplayState.CACHED, value)
            elif state is not DisplayState.FETCH_AVAILABLE:
                self._emit(key, DisplayState.FETCH_AVAILABLE)

    def _submit(self, key: str) -> asyncio.Future[Any]:
        future = self._scheduler.submit(key)
        if future.done():
            self._on_result(key, future)
        else:
            self._emit(key, DisplayState.LOADING)
            future.add_done_callback(lambda done: self._on_late_result(key, done))
        return future

    def _on_late_result(self, key: str, future: asyncio.Future[Any]) -> None:
        # Forgotten keys stay forgotten
        if key in self._display:
            self._on_result(key, future)

    def _on_result(self, key: str, future: asyncio.Future[Any]) -> None:
        if future.cancelled() or not self._enabled:
            return
        value = future.result()
        if value is not None:
            self._emit(key, DisplayState.CACHED, value)
        else:
            self._emit(key, DisplayState.FAILED)

    def _emit(self, key: str, state: DisplayState, value: Any = None) -> None:
        if state is not DisplayState.HIDDEN:
            self._display[key] = state
        update = DisplayUpdate(key=key, state=state, value=value)
        for listener in list(self._display_listeners):
            listener(update)

    @staticmethod
    def _remove(listeners: list[Any], listener: Any) -> None:
        if listener in listeners:
            listeners.remove(listener)


__all__ = [
    "DispatchPolicy",
    "DisplayListener",
    "DisplayState",
    "DisplayUpdate",
    "Mode",
    "ModeListener",
]
