"""Core primitives: time source and debounce timer."""

from __future__ import annotations

from .clock import Clock, SystemClock, TimerHandle
from .debounce import DebounceTimer

__all__ = ["Clock", "DebounceTimer", "SystemClock", "TimerHandle"]
