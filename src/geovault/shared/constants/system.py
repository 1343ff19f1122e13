"""System-level constants: application identity, paths, logging."""

from __future__ import annotations

# Base time units, in milliseconds (the clock resolution)
BASE_MILLISECOND = 1
BASE_SECOND = 1000 * BASE_MILLISECOND
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class Application:
    """Application identity constants."""

    NAME = "GeoVault"
    VERSION = "0.1.0"
    DESCRIPTION = "Rate-limited, cached per-account location lookups"


class FileSystem:
    """File system locations."""

    HOME_DIR = ".geovault"
    CONFIG_DIRECTORY = "config"
    CONFIG_FILENAME = "config.toml"
    CACHE_DIRECTORY = "cache"
    CACHE_FILENAME = "locations.json"
    ENV_FILENAME = ".env"


class Logging:
    """Logging constants."""

    ROOT_LOGGER = "geovault"
    DEFAULT_LEVEL = "INFO"
    DEFAULT_FILE_PATH = "logs/geovault.log"


__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MILLISECOND",
    "BASE_MINUTE",
    "BASE_SECOND",
    "Application",
    "FileSystem",
    "Logging",
]
