"""Lookup backend interface.

A fetcher performs one outbound lookup for one key and reports the outcome
as a :data:`FetchResult`. The scheduler never interprets the value's internal
structure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol, Union

FailureKind = Literal["timeout", "transport"]


@dataclass(frozen=True)
class FetchSuccess:
    """Lookup completed. ``value`` is ``None`` when the backend had nothing to report."""

    value: Any


@dataclass(frozen=True)
class FetchThrottled:
    """The backend refused the lookup because the shared rate budget is spent.

    Attributes:
        reset_at: Clock timestamp (ms) at which the budget resets, if known
    """

    reset_at: float | None = None


@dataclass(frozen=True)
class FetchFailure:
    """Lookup failed (timeout or transport error)."""

    reason: str
    kind: FailureKind = "transport"


FetchResult = Union[FetchSuccess, FetchThrottled, FetchFailure]


class Fetcher(Protocol):
    """Performs a single lookup."""

    async def fetch(self, key: str, timeout_ms: float) -> FetchResult:
        """Look up ``key``, finishing within ``timeout_ms`` where possible."""
        ...


__all__ = [
    "FailureKind",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "FetchThrottled",
    "Fetcher",
]
