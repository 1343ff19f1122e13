"""Cache entry model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheEntry(BaseModel):
    """Immutable cached lookup result.

    Attributes:
        value: The cached lookup value (opaque to the cache)
        expires_at: Clock timestamp (ms) after which the entry is dead.
            An entry without one is treated as already expired.
        created_at: Clock timestamp (ms) of the write
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "value": {"location": "Canada", "source": "App Store"},
                "expires_at": 1767225600000.0,
                "created_at": 1764633600000.0,
            },
        },
    )

    value: Any = Field(..., description="The cached value")
    expires_at: float | None = Field(None, description="Expiry timestamp in ms")
    created_at: float | None = Field(None, description="Creation timestamp in ms")

    def is_expired(self, now: float) -> bool:
        """Whether the entry is dead at ``now``."""
        return self.expires_at is None or self.expires_at <= now


__all__ = ["CacheEntry"]
