"""CLI constants."""

from __future__ import annotations

from .system import Application


class CLIDefaults:
    """CLI default values."""

    VERSION = Application.VERSION
    EXIT_SUCCESS = 0
    EXIT_ERROR = 1


class CLICommands:
    """Command names."""

    LOOKUP = "lookup"
    CACHE = "cache"
    MODE = "mode"


class CLIHelp:
    """Help texts."""

    APP_HELP = "GeoVault - rate-limited, cached account location lookups"
    VERSION_TEXT = "GeoVault v{version}"
    LOOKUP_HELP = "Look up the location of one or more accounts."
    CACHE_HELP = "Inspect or clear the persisted location cache."
    MODE_HELP = "Show or change the dispatch mode (auto or manual)."


class CLIMessages:
    """User facing messages."""

    NO_RESULT = "no result"
    CACHE_CLEARED = "Cache cleared ({count} entries removed)"
    CACHE_EMPTY = "Cache is empty"
    KEY_NOT_CACHED = "No cache entry for {key}"
    MODE_CURRENT = "Current mode: {mode}"
    MODE_CHANGED = "Mode changed to {mode}"


__all__ = ["CLICommands", "CLIDefaults", "CLIHelp", "CLIMessages"]
