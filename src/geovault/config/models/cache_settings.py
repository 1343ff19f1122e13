"""Cache configuration model.

This module contains the cache configuration model: entry lifetime,
persistence debounce and the location of the persisted cache file.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from geovault.shared.constants import Cache, FileSystem


def _default_cache_path() -> str:
    return str(Path.home() / FileSystem.HOME_DIR / FileSystem.CACHE_DIRECTORY / FileSystem.CACHE_FILENAME)


class CacheSettings(BaseModel):
    """Cache configuration.

    Successful lookups live for ``ttl_ms``; the in-memory cache is mirrored
    to ``path`` after ``persist_debounce_ms`` of write inactivity.
    """

    enabled: bool = Field(default=True, description="Persist the cache to disk")
    ttl_ms: float = Field(
        default=Cache.TTL_MS,
        gt=0,
        description="Cache entry lifetime in milliseconds",
    )
    persist_debounce_ms: float = Field(
        default=Cache.PERSIST_DEBOUNCE_MS,
        ge=0,
        description="Quiet period before the cache is written to disk",
    )
    path: str = Field(
        default_factory=_default_cache_path,
        description="Persisted cache file",
    )


__all__ = ["CacheSettings"]
