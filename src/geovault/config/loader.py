"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files
- Configuration file loading from TOML
- Thread-safe singleton pattern for Settings instance
- Configuration update and save operations
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Callable

import toml
from dotenv import load_dotenv
from pydantic import ValidationError

from geovault.config.models.settings import Settings
from geovault.shared.constants import FileSystem
from geovault.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    """Return the per-user configuration file path."""
    return Path.home() / FileSystem.HOME_DIR / FileSystem.CONFIG_FILENAME


def resolve_config_path() -> Path | None:
    """Return the first existing configuration file in lookup order.

    The order is ``config/config.toml``, then ``./config.toml``, then the
    per-user file. ``None`` means settings come from the environment only.
    """
    candidates = [
        Path(FileSystem.CONFIG_DIRECTORY) / FileSystem.CONFIG_FILENAME,
        Path(FileSystem.CONFIG_FILENAME),
        default_config_path(),
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking pattern to ensure thread-safety
    while minimizing lock overhead.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it if necessary."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self) -> Settings:
        """Reload the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings()

        return self._instance

    def update_and_save_config(
        self,
        updater: Callable[[Settings], None],
        config_path: Path | str | None = None,
    ) -> Settings:
        """Update configuration, validate, save to file, and reload global cache.

        The updater works on a deep copy; the cached instance is only
        replaced once the copy validates and has been written.

        Args:
            updater: Callable that modifies Settings object in-place
            config_path: Path to save the configuration file. Defaults to the
                file settings were loaded from, or the per-user file when
                none exists.

        Returns:
            The updated Settings instance

        Raises:
            ApplicationError: If validation fails or save operation fails
        """
        config_path = Path(config_path) if config_path else resolve_config_path() or default_config_path()

        with self._lock:
            try:
                current = self.get_config()
                updated = current.model_copy(deep=True)
                updater(updated)
                updated = Settings.model_validate(updated.model_dump())
                updated.to_toml_file(config_path)
                self._instance = updated

                logger.info("Configuration updated and saved successfully to %s", config_path)

            except Exception as e:
                logger.exception("Failed to update and save configuration")
                raise ApplicationError(
                    code=ErrorCode.CONFIG_ERROR,
                    message=f"Configuration update failed: {e}",
                    context=ErrorContext(
                        operation="update_and_save_config",
                        additional_data={"config_path": str(config_path)},
                    ),
                    original_error=e,
                ) from e

        return updated

    def set_config(self, settings: Settings | None) -> None:
        """Replace the cached instance (``None`` forces a reload on next access)."""
        with self._lock:
            self._instance = settings


def _env_file_path() -> Path:
    # PyInstaller builds look next to the executable
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent / FileSystem.ENV_FILENAME
    return Path(FileSystem.ENV_FILENAME)


def _load_env_file() -> None:
    """Load environment variables from an optional .env file.

    Existing environment variables take precedence over the file.

    Raises:
        InfrastructureError: If the .env file exists but cannot be read
    """
    env_file = _env_file_path()
    if not env_file.exists():
        return

    try:
        load_dotenv(env_file, override=False)
    except PermissionError as e:
        raise InfrastructureError(
            code=ErrorCode.FILE_PERMISSION_DENIED,
            message=f"Permission denied reading .env file: {env_file}",
            context=ErrorContext(
                operation="load_env",
                additional_data={"file_name": env_file.name},
            ),
            original_error=e,
        ) from e
    except OSError as e:
        raise InfrastructureError(
            code=ErrorCode.FILE_READ_ERROR,
            message=f"Failed to read .env file: {e}",
            context=ErrorContext(
                operation="load_env",
                additional_data={"file_name": env_file.name},
            ),
            original_error=e,
        ) from e


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from TOML configuration file or environment.

    Args:
        config_path: Optional path to TOML configuration file. If None, tries
            the default locations and falls back to environment variables.

    Returns:
        Settings instance loaded from the specified source

    Raises:
        ApplicationError: If the configuration file is missing or invalid
    """
    _load_env_file()

    if config_path:
        return _load_file(Path(config_path))

    resolved = resolve_config_path()
    if resolved is not None:
        logger.debug("Loading configuration from %s", resolved)
        return _load_file(resolved)

    try:
        return Settings()
    except ValidationError as e:
        raise _invalid_config(e, None) from e


def _load_file(config_path: Path) -> Settings:
    try:
        return Settings.from_toml_file(config_path)
    except FileNotFoundError as e:
        raise ApplicationError(
            code=ErrorCode.CONFIG_MISSING,
            message=str(e),
            context=ErrorContext(operation="load_settings", file_path=str(config_path)),
            original_error=e,
        ) from e
    except (ValidationError, toml.TomlDecodeError) as e:
        raise _invalid_config(e, config_path) from e


def _invalid_config(error: Exception, config_path: Path | None) -> ApplicationError:
    return ApplicationError(
        code=ErrorCode.CONFIG_INVALID,
        message=f"Invalid configuration: {error!s}",
        context=ErrorContext(
            operation="load_settings",
            file_path=str(config_path) if config_path else None,
        ),
        original_error=error,
    )


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config() -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config()


def update_and_save_config(
    updater: Callable[[Settings], None],
    config_path: Path | str | None = None,
) -> Settings:
    """Update configuration, validate, save to file, and reload global cache.

    Args:
        updater: Callable that modifies Settings object in-place
        config_path: Path to save the configuration file (defaults to the
            per-user configuration file)
    """
    return _loader.update_and_save_config(updater, config_path)


def set_config(settings: Settings | None) -> None:
    """Replace the global settings instance."""
    _loader.set_config(settings)
