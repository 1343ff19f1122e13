"""
Test CLI context management system.

This test ensures that the context management system works correctly
with ContextVar and provides proper type safety.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from geovault.cli.common.context import (
    CliContext,
    LogLevel,
    clear_cli_context,
    get_cli_context,
    set_cli_context,
)


def test_cli_context_creation() -> None:
    """Test that CliContext can be created with default values."""
    context = CliContext()

    assert context.verbose == 0
    assert context.log_level == LogLevel.WARNING
    assert context.json_output is False
    assert context.config_path is None


def test_cli_context_validation() -> None:
    """Test that CliContext validates input values."""
    with pytest.raises(ValidationError):
        CliContext(verbose=-1)

    with pytest.raises(ValidationError):
        CliContext(log_level="INVALID")


def test_cli_context_get_effective_log_level() -> None:
    """Test that verbose mode forces DEBUG."""
    assert CliContext(log_level=LogLevel.INFO).get_effective_log_level() == "INFO"
    assert CliContext(verbose=1, log_level=LogLevel.WARNING).get_effective_log_level() == "DEBUG"


def test_context_var_operations() -> None:
    """Test ContextVar operations."""
    clear_cli_context()

    with pytest.raises(RuntimeError):
        get_cli_context()

    context = CliContext(json_output=True, config_path=Path("config.toml"))
    set_cli_context(context)

    assert get_cli_context() is context
    assert get_cli_context().is_json_output_enabled() is True

    clear_cli_context()
