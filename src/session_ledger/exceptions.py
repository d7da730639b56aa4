"""Custom exceptions for the session ledger.

All exceptions inherit from SessionLedgerError, allowing callers to catch
every ledger error with a single except clause if desired.

Exception hierarchy:
    SessionLedgerError (base)
    ├── ConfigurationError
    │   └── ValidationError
    ├── StoreError
    │   ├── SessionNotFoundError
    │   ├── ToolEventNotFoundError
    │   ├── SchemaError
    │   ├── StorageUnavailableError
    │   └── SerializationError
    └── NamingError
"""

from pathlib import Path
from typing import Any


class SessionLedgerError(Exception):
    """Base exception for all session ledger errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize ledger error.

        Args:
            message: Error description.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SessionLedgerError):
    """Raised when configuration is invalid or cannot be loaded."""

    def __init__(
        self,
        message: str,
        config_file: Path | None = None,
        key: str | None = None,
    ):
        details = {}
        if config_file:
            details["config_file"] = str(config_file)
        if key:
            details["key"] = key
        super().__init__(message, details)
        self.config_file = config_file
        self.key = key


class ValidationError(ConfigurationError):
    """Raised when configuration values fail validation.

    Examples:
        - Non-positive busy timeout
        - Unknown log level
        - Invalid naming provider URL
    """

    def __init__(
        self,
        message: str,
        field: str,
        value: Any = None,
        expected: str | None = None,
    ):
        """Initialize validation error.

        Args:
            message: Error description.
            field: The field that failed validation.
            value: The invalid value (will be truncated if too long).
            expected: Description of expected value format.
        """
        super().__init__(message)
        self.details["field"] = field
        if value is not None:
            value_str = str(value)
            self.details["value"] = value_str[:100] + "..." if len(value_str) > 100 else value_str
        if expected:
            self.details["expected"] = expected
        self.field = field
        self.value = value
        self.expected = expected


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(SessionLedgerError):
    """Base class for storage errors."""


class SessionNotFoundError(StoreError):
    """Raised when a session id does not exist (get, delete, rename)."""

    def __init__(self, session_id: str):
        super().__init__("Session not found", {"session_id": session_id})
        self.session_id = session_id


class ToolEventNotFoundError(StoreError):
    """Raised when completing a tool event id that was never started."""

    def __init__(self, event_id: int):
        super().__init__("Tool event not found", {"event_id": event_id})
        self.event_id = event_id


class SchemaError(StoreError):
    """Raised when the on-disk schema cannot be brought to the expected version.

    This is fatal: the running code and the database disagree in a way that
    no registered migration can resolve, so storage initialization aborts.
    """

    def __init__(self, message: str, version: int | None = None):
        details = {}
        if version is not None:
            details["version"] = version
        super().__init__(message, details)
        self.version = version


class StorageUnavailableError(StoreError):
    """Raised when the database file cannot be opened.

    Not retried automatically; the caller decides what to do.
    """

    def __init__(self, db_path: Path, cause: Exception | None = None):
        details: dict[str, Any] = {"path": str(db_path)}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Failed to open SQLite database at '{db_path}'", details)
        self.db_path = db_path
        self.cause = cause


class SerializationError(StoreError):
    """Raised when stored or outgoing JSON cannot be (de)serialized.

    Only message content propagates this error. Malformed extension data and
    recipes are tolerated on read.
    """

    def __init__(self, message: str, column: str | None = None, cause: Exception | None = None):
        details = {}
        if column:
            details["column"] = column
        if cause:
            details["cause"] = str(cause)
        super().__init__(message, details)
        self.column = column
        self.cause = cause


# =============================================================================
# Naming Errors
# =============================================================================


class NamingError(SessionLedgerError):
    """Raised when the session-name provider cannot produce a name."""

    def __init__(self, message: str, provider: str | None = None, cause: Exception | None = None):
        details = {}
        if provider:
            details["provider"] = provider
        super().__init__(message, details)
        self.provider = provider
        self.cause = cause
