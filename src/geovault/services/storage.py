"""Durable storage backends for the result cache.

The cache is loaded once at startup and written back as a whole snapshot,
so a store only needs :meth:`DurableStore.load` and :meth:`DurableStore.save`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import orjson
from pydantic import ValidationError

from geovault.services.cache_models import CacheEntry
from geovault.shared.constants import Cache
from geovault.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


class DurableStore(Protocol):
    """Persistent home of the cache snapshot."""

    def load(self) -> dict[str, CacheEntry]:
        """Return every persisted entry."""
        ...

    def save(self, entries: Mapping[str, CacheEntry]) -> None:
        """Replace the persisted snapshot with ``entries``."""
        ...


class MemoryStore:
    """In-process store, used when persistence is disabled and in tests."""

    def __init__(self, entries: Mapping[str, CacheEntry] | None = None) -> None:
        self.entries: dict[str, CacheEntry] = dict(entries or {})
        self.save_count = 0

    def load(self) -> dict[str, CacheEntry]:
        return dict(self.entries)

    def save(self, entries: Mapping[str, CacheEntry]) -> None:
        self.entries = dict(entries)
        self.save_count += 1


class JsonFileStore:
    """Single JSON file store.

    Layout::

        {"version": 1, "entries": {"<key>": {"value": ..., "expires_at": ..., "created_at": ...}}}

    Writes go to a temporary sibling file which then replaces the target, so
    a crash mid-write never leaves a truncated cache behind. A file that
    cannot be decoded is moved aside to ``<name>.corrupted.<timestamp>.json``.

    Args:
        path: Location of the cache file
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, CacheEntry]:
        """Read the cache file.

        Returns:
            Entries keyed by lookup key; empty when the file does not exist

        Raises:
            InfrastructureError: If the file exists but cannot be read
            DomainError: If the file content is corrupt
        """
        context = ErrorContext(operation="cache_load", file_path=str(self.path))

        if not self.path.exists():
            return {}

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_READ_FAILED,
                message=f"Failed to read cache file: {e!s}",
                context=context,
                original_error=e,
            ) from e

        try:
            document = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._quarantine()
            raise DomainError(
                code=ErrorCode.CACHE_CORRUPTION,
                message=f"Cache file is not valid JSON: {e!s}",
                context=context,
                original_error=e,
            ) from e

        if not isinstance(document, dict) or not isinstance(document.get(Cache.FIELD_ENTRIES), dict):
            self._quarantine()
            raise DomainError(
                code=ErrorCode.CACHE_CORRUPTION,
                message="Cache file has an unexpected layout",
                context=context,
            )

        entries: dict[str, CacheEntry] = {}
        for key, payload in document[Cache.FIELD_ENTRIES].items():
            try:
                entries[key] = CacheEntry.model_validate(payload)
            except ValidationError:
                logger.warning("Skipping malformed cache entry for key '%s'", key)

        return entries

    def save(self, entries: Mapping[str, CacheEntry]) -> None:
        """Write the whole snapshot.

        Raises:
            InfrastructureError: If the file cannot be written
        """
        document = {
            Cache.FIELD_VERSION: Cache.FORMAT_VERSION,
            Cache.FIELD_ENTRIES: {key: entry.model_dump() for key, entry in entries.items()},
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            payload = orjson.dumps(document)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError) as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to write cache file: {e!s}",
                context=ErrorContext(
                    operation="cache_save",
                    file_path=str(self.path),
                    additional_data={"entries": len(entries)},
                ),
                original_error=e,
            ) from e

    def _quarantine(self) -> None:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        backup = self.path.with_name(f"{self.path.stem}.corrupted.{timestamp}.json")
        try:
            self.path.rename(backup)
        except OSError:
            logger.warning("Could not move corrupted cache file %s aside", self.path)
            return
        logger.warning("Corrupted cache file backed up to %s", backup)


__all__ = ["DurableStore", "JsonFileStore", "MemoryStore"]
