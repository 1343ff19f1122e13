"""Result cache with per-entry expiry and debounced persistence.

Successful lookups are stored with an expiry timestamp and served without
touching the scheduler until they expire. Negative outcomes are never
stored, so a later lookup can retry.

The in-memory map is mirrored to a :class:`DurableStore` on a debounce
timer: every write restarts the countdown and the whole snapshot is saved
once writes have been quiet for ``persist_debounce_ms``.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any

from geovault.core.clock import Clock
from geovault.core.debounce import DebounceTimer
from geovault.services.cache_models import CacheEntry
from geovault.services.storage import DurableStore
from geovault.shared.constants import Cache
from geovault.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    GeoVaultError,
    create_validation_error,
)
from geovault.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)


class ResultCache:
    """Key to value store with expiry, owned by the request scheduler.

    Entries are immutable; ``set`` stores its own copy of the value and
    replaces the entry for a key without merging, and ``get`` hands out a
    copy. Expired entries stay dormant until overwritten.

    Args:
        clock: Time source for expiry checks and the persistence timer
        store: Durable store; ``None`` keeps the cache in memory only
        ttl_ms: Default entry lifetime
        persist_debounce_ms: Quiet period before the snapshot is saved
    """

    def __init__(
        self,
        clock: Clock,
        store: DurableStore | None = None,
        ttl_ms: float = Cache.TTL_MS,
        persist_debounce_ms: float = Cache.PERSIST_DEBOUNCE_MS,
    ) -> None:
        if ttl_ms <= 0:
            raise create_validation_error(
                f"ttl_ms must be positive, got: {ttl_ms}",
                field="ttl_ms",
                operation="cache_init",
            )

        self._clock = clock
        self._store = store
        self.ttl_ms = ttl_ms
        self._entries: dict[str, CacheEntry] = {}
        self._hydrated = False
        self._persist_timer = DebounceTimer(clock, persist_debounce_ms, self._persist)

        self._hits = 0
        self._misses = 0
        self._writes = 0
        self._saves = 0
        self._save_failures = 0

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` when absent or expired."""
        entry = self._live(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return copy.deepcopy(entry.value)

    def lookup(self, key: str) -> CacheEntry | None:
        """Return a copy of the live entry for ``key`` without touching statistics."""
        entry = self._live(key)
        return None if entry is None else entry.model_copy(deep=True)

    def has(self, key: str) -> bool:
        """Whether a live entry exists for ``key``."""
        return self._live(key) is not None

    def set(self, key: str, value: Any, ttl_ms: float | None = None) -> CacheEntry:
        """Store ``value`` for ``key``, overwriting any prior entry.

        Args:
            key: Lookup key
            value: Successful lookup value
            ttl_ms: Entry lifetime; defaults to the cache's ``ttl_ms``

        Returns:
            The stored entry

        Raises:
            DomainError: If ``value`` is ``None`` (negative results are never cached)
        """
        if value is None:
            raise DomainError(
                code=ErrorCode.CACHE_NEGATIVE_RESULT,
                message=f"Refusing to cache a negative result for key '{key}'",
                context=ErrorContext(operation="cache_set", additional_data={"key": key}),
            )

        now = self._clock.now()
        lifetime = self.ttl_ms if ttl_ms is None else ttl_ms
        entry = CacheEntry(value=copy.deepcopy(value), expires_at=now + lifetime, created_at=now)
        self._entries[key] = entry.model_copy(deep=True)
        self._writes += 1

        if self._store is not None:
            self._persist_timer.trigger()

        return entry

    def clear(self) -> int:
        """Drop every entry and schedule persistence.

        Returns:
            Number of entries removed
        """
        removed = len(self._entries)
        self._entries.clear()
        if self._store is not None:
            self._persist_timer.trigger()
        return removed

    def hydrate(self) -> int:
        """Load the persisted snapshot once.

        A store that cannot be read, or holds corrupt data, is logged and the
        cache starts empty. Later calls are no-ops.

        Returns:
            Number of entries loaded
        """
        if self._hydrated:
            return 0
        self._hydrated = True

        if self._store is None:
            return 0

        start = time.perf_counter()
        try:
            loaded = self._store.load()
        except GeoVaultError as e:
            log_operation_error(logger, e, operation="cache_hydrate", level=logging.WARNING)
            return 0

        for key, entry in loaded.items():
            self._entries.setdefault(key, entry)

        log_operation_success(
            logger,
            "cache_hydrate",
            (time.perf_counter() - start) * 1000,
            result_info={"entries": len(loaded)},
        )
        return len(loaded)

    def flush(self) -> bool:
        """Persist now if a debounced save is pending.

        Returns:
            True if a save was pending
        """
        return self._persist_timer.flush()

    def close(self) -> None:
        """Flush any pending save and stop the timer."""
        self.flush()
        self._persist_timer.cancel()

    def snapshot(self) -> dict[str, CacheEntry]:
        """Copy of every stored entry, expired ones included."""
        return dict(self._entries)

    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        total = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "live_entries": sum(1 for key in self._entries if self.has(key)),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": (self._hits / total) if total else 0.0,
            "writes": self._writes,
            "saves": self._saves,
            "save_failures": self._save_failures,
            "persist_pending": self._persist_timer.pending,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def _live(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock.now()):
            return None
        return entry

    def _persist(self) -> None:
        if self._store is None:
            return

        start = time.perf_counter()
        try:
            self._store.save(self.snapshot())
        except GeoVaultError as e:
            self._save_failures += 1
            log_operation_error(logger, e, operation="cache_persist")
            return

        self._saves += 1
        log_operation_success(
            logger,
            "cache_persist",
            (time.perf_counter() - start) * 1000,
            result_info={"entries": len(self._entries)},
        )


__all__ = ["CacheEntry", "ResultCache"]
