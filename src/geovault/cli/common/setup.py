"""Per-command setup: configuration and service wiring."""

from __future__ import annotations

import logging

from dependency_injector import providers

from geovault.cli.common.context import CliContext
from geovault.config.loader import load_settings, set_config
from geovault.config.models.settings import Settings
from geovault.containers import Container

logger = logging.getLogger(__name__)


def load_cli_settings(context: CliContext) -> Settings:
    """Load settings for a command and make them the global instance."""
    settings = load_settings(context.config_path)
    set_config(settings)
    return settings


def build_container(settings: Settings, context: CliContext) -> Container:
    """Create a container bound to ``settings``."""
    container = Container()
    container.config.override(providers.Object(settings))
    container.config_path.override(providers.Object(context.config_path))
    return container
