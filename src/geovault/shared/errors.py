"""GeoVault Error Handling Module

This module defines the error handling system for GeoVault, providing
structured error classes with context information and user-friendly messages.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved

Per-key lookup failures (timeouts, transport failures, throttling) are not
raised to callers of the scheduler. They are wrapped in these classes only
for structured logging; the caller's future resolves with ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]


class ErrorCode(str, Enum):
    """Error codes for GeoVault.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Lookup (Fetcher) Errors
    FETCH_TIMEOUT = "FETCH_TIMEOUT"
    FETCH_THROTTLED = "FETCH_THROTTLED"
    FETCH_TRANSPORT_FAILED = "FETCH_TRANSPORT_FAILED"
    FETCH_INVALID_RESPONSE = "FETCH_INVALID_RESPONSE"

    # File System Errors
    FILE_PERMISSION_DENIED = "FILE_PERMISSION_DENIED"
    FILE_READ_ERROR = "FILE_READ_ERROR"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Cache Errors
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_CORRUPTION = "CACHE_CORRUPTION"
    CACHE_NEGATIVE_RESULT = "CACHE_NEGATIVE_RESULT"

    # Configuration Errors
    CONFIG_ERROR = "CONFIG_ERROR"
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Scheduler Errors
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    SCHEDULER_CLOSED = "SCHEDULER_CLOSED"

    # CLI Errors
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types. ``None`` values are
    dropped so optional fields can be passed through unconditionally.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if val is None:
            continue
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContextModel:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data to keep log records serializable.

    Attributes:
        file_path: Optional file path associated with the error
        operation: Optional operation name that caused the error
        additional_data: Optional dict with primitive values only
    """

    file_path: str | None = None
    operation: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization validation and coercion."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self) -> dict[str, Any]:
        """Export the set fields as a dict with a guaranteed additional_data key.

        Example:
            >>> ErrorContextModel(operation="fetch", file_path="/test").safe_dict()
            {'file_path': '/test', 'operation': 'fetch', 'additional_data': {}}
        """
        data: dict[str, Any] = {}
        if self.file_path is not None:
            data["file_path"] = self.file_path
        if self.operation is not None:
            data["operation"] = self.operation
        data["additional_data"] = self.additional_data or {}
        return data


ErrorContext = ErrorContextModel


class GeoVaultError(Exception):
    """Base exception class for all GeoVault errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize GeoVaultError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error with code, message,
            context, and original_error (if present)
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(GeoVaultError):
    """Domain-specific errors.

    These errors occur when a domain rule is violated, for example an
    attempt to cache a negative lookup result.
    """


class InfrastructureError(GeoVaultError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems: the lookup
    backend, the file system, or the persisted cache file.
    """


class ApplicationError(GeoVaultError):
    """Application-level errors.

    These errors occur at the application layer, typically related to
    configuration, command handling, or application flow.
    """


class InvariantViolationError(ApplicationError):
    """Raised when the scheduler's internal consistency is broken.

    A double claim of a key or an illegal processing-state transition is a
    programming defect. It is never converted into a ``None`` result.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(ErrorCode.INVARIANT_VIOLATION, message, context)


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DomainError:
    """Create a validation error with context."""
    context = ErrorContext(
        operation=operation,
        additional_data={"field": field} if field else None,
    )
    return DomainError(
        ErrorCode.VALIDATION_ERROR,
        message,
        context,
        original_error,
    )


def create_fetch_error(
    code: ErrorCode,
    message: str,
    key: str,
    original_error: Exception | None = None,
) -> InfrastructureError:
    """Create a lookup error for a single key."""
    context = ErrorContext(
        operation="fetch",
        additional_data={"key": key},
    )
    return InfrastructureError(code, message, context, original_error)


class CliError(ApplicationError):
    """CLI-specific error with enhanced context for command-line operations."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        command: str | None = None,
        exit_code: int = 1,
    ):
        super().__init__(code, message, context, original_error)
        self.command = command
        self.exit_code = exit_code


def create_cli_error(
    message: str,
    command: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
    exit_code: int = 1,
) -> CliError:
    """Create a CLI error with context."""
    context = ErrorContext(
        operation=operation,
        additional_data={"command": command} if command else None,
    )
    return CliError(
        ErrorCode.CLI_UNEXPECTED_ERROR,
        message,
        context,
        original_error,
        command,
        exit_code,
    )
