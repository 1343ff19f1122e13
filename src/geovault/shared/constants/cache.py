"""Cache-related constants."""

from __future__ import annotations

from .system import BASE_DAY, BASE_SECOND


class Cache:
    """Cache configuration constants (milliseconds)."""

    TTL_MS = 30 * BASE_DAY
    PERSIST_DEBOUNCE_MS = 5 * BASE_SECOND

    # Persisted file layout
    FORMAT_VERSION = 1
    FIELD_VERSION = "version"
    FIELD_ENTRIES = "entries"


__all__ = ["Cache"]
