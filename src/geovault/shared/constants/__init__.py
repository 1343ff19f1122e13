"""
GeoVault Constants Module

Centralized constants for GeoVault. Magic values and default
configuration live here so there is a single source of truth.
"""

from .cache import Cache
from .cli import CLICommands, CLIDefaults, CLIHelp, CLIMessages
from .network import HTTPStatus, NetworkConfig, RateLimitHeaders
from .scheduler import DispatchDefaults, SchedulerDefaults
from .system import (
    BASE_DAY,
    BASE_HOUR,
    BASE_MILLISECOND,
    BASE_MINUTE,
    BASE_SECOND,
    Application,
    FileSystem,
    Logging,
)

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MILLISECOND",
    "BASE_MINUTE",
    "BASE_SECOND",
    "Application",
    "CLICommands",
    "CLIDefaults",
    "CLIHelp",
    "CLIMessages",
    "Cache",
    "DispatchDefaults",
    "FileSystem",
    "HTTPStatus",
    "Logging",
    "NetworkConfig",
    "RateLimitHeaders",
    "SchedulerDefaults",
]
