"""
CLI Error Handling Utilities

This module provides utilities for consistent error handling across CLI commands,
including standardized error output formatting and exception mapping.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from geovault.shared.errors import (
    ApplicationError,
    CliError,
    GeoVaultError,
    InfrastructureError,
    create_cli_error,
)

logger = logging.getLogger(__name__)


def format_json_output(
    command: str,
    *,
    success: bool,
    errors: list[str] | None = None,
    data: dict[str, Any] | None = None,
) -> bytes:
    """Format command output as JSON.

    Args:
        command: The command that was executed
        success: Whether the operation was successful
        errors: List of error messages
        data: Additional data to include

    Returns:
        JSON-formatted bytes for output
    """
    output: dict[str, Any] = {
        "success": success,
        "command": command,
    }

    if errors:
        output["errors"] = errors

    if data is not None:
        output["data"] = data

    return json.dumps(output, indent=2, ensure_ascii=False, default=str).encode("utf-8")


def write_json_output(payload: bytes) -> None:
    sys.stdout.buffer.write(payload)
    sys.stdout.buffer.write(b"\n")
    sys.stdout.buffer.flush()


def handle_cli_error(
    error: Exception,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Handle CLI errors with consistent formatting and logging.

    Args:
        error: The exception that occurred
        command: The CLI command being executed
        json_output: Whether to output JSON format

    Returns:
        Exit code for the CLI command
    """
    error_context: dict[str, Any] = {
        "command": command,
        "error_type": type(error).__name__,
        "json_output": json_output,
    }
    cli_error = _map_error_to_cli_error(error, command, error_context)

    logger.error(
        "CLI error in %s: %s",
        command,
        cli_error.message,
        extra={"context": error_context},
        exc_info=not isinstance(error, GeoVaultError),
    )

    if json_output:
        write_json_output(
            format_json_output(
                command,
                success=False,
                errors=[cli_error.message],
                data={
                    "error_code": error_context.get("error_code", cli_error.code.value),
                    "error_type": type(error).__name__,
                    "exit_code": cli_error.exit_code,
                },
            ),
        )
    else:
        sys.stderr.write(f"Error: {cli_error.message}\n")

    return cli_error.exit_code


def _map_error_to_cli_error(
    error: Exception,
    command: str,
    error_context: dict[str, Any],
) -> CliError:
    """Map specific exception types to CLI errors."""
    if isinstance(error, CliError):
        error_context["error_code"] = error.code.value
        return error

    if isinstance(error, ApplicationError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Application error: {error.message}",
            command=command,
            original_error=error,
        )

    if isinstance(error, InfrastructureError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Infrastructure error: {error.message}",
            command=command,
            original_error=error,
        )

    if isinstance(error, GeoVaultError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=error.message,
            command=command,
            original_error=error,
        )

    if isinstance(error, (FileNotFoundError, PermissionError, OSError)):
        error_context["error_category"] = "file_system"
        return create_cli_error(
            message=f"File system error: {error}",
            command=command,
            original_error=error,
        )

    if isinstance(error, (ValueError, KeyError, TypeError)):
        error_context["error_category"] = "data_processing"
        return create_cli_error(
            message=f"Data processing error: {error}",
            command=command,
            original_error=error,
        )

    error_context["error_category"] = "unexpected"
    return create_cli_error(
        message=f"Unexpected error: {error}",
        command=command,
        original_error=error,
    )
