"""GeoVault Configuration Module

This module provides unified access to configuration models and settings
management for GeoVault.

All configuration components are available through this package:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config, resolve_config_path,
  update_and_save_config
- Domain models: App, API, Scheduler, Cache, Dispatch, Logging settings
"""

from __future__ import annotations

from .models.settings import Settings

from .models import (
    APISettings,
    AppSettings,
    CacheSettings,
    DispatchSettings,
    LoggingSettings,
    SchedulerSettings,
)

# Import loader functions directly from loader module to avoid circular dependency
from .loader import (
    default_config_path,
    get_config,
    load_settings,
    reload_config,
    resolve_config_path,
    set_config,
    update_and_save_config,
)

__all__ = [
    "APISettings",
    "AppSettings",
    "CacheSettings",
    "DispatchSettings",
    "LoggingSettings",
    "SchedulerSettings",
    "Settings",
    "default_config_path",
    "get_config",
    "load_settings",
    "reload_config",
    "resolve_config_path",
    "set_config",
    "update_and_save_config",
]
