"""Dispatch policy configuration model."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from geovault.shared.constants import DispatchDefaults


class DispatchSettings(BaseModel):
    """Dispatch policy configuration.

    ``auto`` looks up every visible key without a cache entry; ``manual``
    waits for an explicit trigger per key.
    """

    mode: Literal["auto", "manual"] = Field(
        default=DispatchDefaults.MODE,
        description="Dispatch mode (auto, manual)",
    )
    enabled: bool = Field(
        default=DispatchDefaults.ENABLED,
        description="Process visible keys at all",
    )


__all__ = ["DispatchSettings"]
