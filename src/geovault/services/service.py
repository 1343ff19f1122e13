"""Location lookup service facade.

:class:`LocationService` ties the cache, scheduler and dispatch policy
together for a host application: it hydrates the cache before the first
lookup, persists mode and enable changes to the configuration file, and
flushes the cache on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import types
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Callable

from typing_extensions import Self

from geovault.config.loader import update_and_save_config
from geovault.config.models.settings import Settings
from geovault.services.cache import ResultCache
from geovault.services.dispatch_policy import DispatchPolicy, DisplayState, Mode
from geovault.services.scheduler import RequestScheduler

logger = logging.getLogger(__name__)


class LocationService:
    """High level entry point over the request scheduler.

    Args:
        scheduler: Request scheduler (owns cache, limiter and state tracker)
        policy: Dispatch policy on top of ``scheduler``
        fetcher: Lookup backend, closed on shutdown if it supports it
        persist_settings: Write mode and enable changes to ``config_path``
        config_path: Configuration file (defaults to the file settings were
            loaded from)
    """

    def __init__(
        self,
        scheduler: RequestScheduler,
        policy: DispatchPolicy,
        fetcher: Any = None,
        *,
        persist_settings: bool = True,
        config_path: str | Path | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.policy = policy
        self._fetcher = fetcher
        self._config_path = config_path
        self._started = False

        if persist_settings:
            policy.on_mode_change(self._persist_mode)

    @property
    def cache(self) -> ResultCache:
        return self.scheduler.cache

    def start(self) -> int:
        """Hydrate the cache once. Returns the number of entries loaded."""
        if self._started:
            return 0
        self._started = True
        loaded = self.cache.hydrate()
        logger.info("Location service started with %d cached entries", loaded)
        return loaded

    async def lookup(self, keys: Iterable[str], *, trigger: bool = True) -> dict[str, Any]:
        """Surface ``keys`` and wait for their values.

        Keys go through the dispatch policy exactly like visible keys in a
        UI. In deferred mode they are only looked up when ``trigger`` is set;
        otherwise they resolve to ``None``.

        Returns:
            Value (or ``None``) per key, in input order
        """
        self.start()

        pending: dict[str, asyncio.Future[Any] | None] = {}
        for key in keys:
            if key in pending:
                continue
            state = self.policy.notify_key_visible(key)
            if not self.policy.enabled or (state is DisplayState.FETCH_AVAILABLE and not trigger):
                pending[key] = None
            else:
                pending[key] = self.policy.trigger_fetch(key)

        futures = [future for future in pending.values() if future is not None]
        if futures:
            await asyncio.gather(*futures)

        return {key: (future.result() if future is not None else None) for key, future in pending.items()}

    def set_mode(self, mode: Mode | str) -> None:
        self.policy.set_mode(mode)

    def set_enabled(self, enabled: bool) -> None:
        if enabled == self.policy.enabled:
            return
        self.policy.set_enabled(enabled)
        self._save(lambda settings: setattr(settings.dispatch, "enabled", enabled))

    def get_stats(self) -> dict[str, Any]:
        return {
            "mode": self.policy.mode.value,
            "enabled": self.policy.enabled,
            "scheduler": self.scheduler.get_stats(),
            "cache": self.cache.stats(),
        }

    async def aclose(self) -> None:
        """Stop the scheduler, flush the cache and close the backend."""
        await self.scheduler.aclose()
        close = getattr(self._fetcher, "close", None)
        if callable(close):
            close()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    def _persist_mode(self, mode: Mode) -> None:
        self._save(lambda settings: setattr(settings.dispatch, "mode", mode.value))

    def _save(self, updater: Callable[[Settings], None]) -> None:
        update_and_save_config(updater, self._config_path)


__all__ = ["LocationService"]
