"""Constants for the session ledger.

Centralizes the magic strings and numbers used across the store, the tool
classifier, configuration and the session-naming provider.

Constants are organized by domain:
- Storage layout and schema
- Message roles
- Tool event statuses
- Tool operation categories
- Configuration defaults and limits
- Session naming
"""

from pathlib import Path
from typing import Final

# =============================================================================
# Storage Layout
# =============================================================================

APP_NAME: Final[str] = "session-ledger"
DEFAULT_DATA_DIR: Final[Path] = Path.home() / ".local" / "share" / APP_NAME / "sessions"
DEFAULT_DB_FILENAME: Final[str] = "sessions.db"
CONFIG_SECTION_KEY: Final[str] = "session_ledger"

# Busy-wait before a writer/writer conflict fails
DEFAULT_BUSY_TIMEOUT_SECONDS: Final[float] = 5.0
MIN_BUSY_TIMEOUT_SECONDS: Final[float] = 0.1
MAX_BUSY_TIMEOUT_SECONDS: Final[float] = 300.0

# Millisecond-precision UTC timestamp produced by SQLite itself
SQL_NOW: Final[str] = "strftime('%Y-%m-%d %H:%M:%f', 'now')"

# Session ids are "<YYYYMMDD>_<N>"
SESSION_ID_DATE_FORMAT: Final[str] = "%Y%m%d"
SESSION_ID_SEPARATOR: Final[str] = "_"

# =============================================================================
# Message Roles
# =============================================================================

ROLE_USER: Final[str] = "user"
ROLE_ASSISTANT: Final[str] = "assistant"

# =============================================================================
# Tool Event Statuses
# =============================================================================

TOOL_STATUS_RUNNING: Final[str] = "running"
TOOL_STATUS_SUCCESS: Final[str] = "success"
TOOL_STATUS_ERROR: Final[str] = "error"
TOOL_STATUS_CANCELLED: Final[str] = "cancelled"
TERMINAL_TOOL_STATUSES: Final[tuple[str, ...]] = (
    TOOL_STATUS_SUCCESS,
    TOOL_STATUS_ERROR,
    TOOL_STATUS_CANCELLED,
)

# =============================================================================
# Tool Operation Categories (metrics names)
# =============================================================================

OPERATION_FILE_CREATE: Final[str] = "file_create"
OPERATION_FILE_EDIT: Final[str] = "file_edit"
OPERATION_FILE_READ: Final[str] = "file_read"
OPERATION_FILE_DELETE: Final[str] = "file_delete"
OPERATION_COMMAND_EXECUTE: Final[str] = "command_execute"
OPERATION_SEARCH: Final[str] = "search"
OPERATION_NAVIGATE: Final[str] = "navigate"

# Extension prefix separators, in precedence order
TOOL_EXTENSION_SEPARATORS: Final[tuple[str, ...]] = ("__", "::")
DETAILED_NAME_SEPARATOR: Final[str] = "::"

# Argument aliases, first present wins
FILE_PATH_ARGUMENT_KEYS: Final[tuple[str, ...]] = ("path", "file", "filename")
COMMAND_ARGUMENT_KEYS: Final[tuple[str, ...]] = ("command", "cmd")
QUERY_ARGUMENT_KEYS: Final[tuple[str, ...]] = ("query", "search")
OPERATION_ARGUMENT_KEYS: Final[tuple[str, ...]] = ("operation", "action")
CONTENT_ARGUMENT_KEYS: Final[tuple[str, ...]] = ("content", "text")

# =============================================================================
# Logging
# =============================================================================

LOGGER_ROOT: Final[str] = "session_ledger"
LOG_LEVEL_DEBUG: Final[str] = "DEBUG"
LOG_LEVEL_INFO: Final[str] = "INFO"
LOG_LEVEL_WARNING: Final[str] = "WARNING"
LOG_LEVEL_ERROR: Final[str] = "ERROR"
VALID_LOG_LEVELS: Final[tuple[str, ...]] = (
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_INFO,
    LOG_LEVEL_WARNING,
    LOG_LEVEL_ERROR,
)

DEFAULT_LOG_ROTATION_ENABLED: Final[bool] = True
DEFAULT_LOG_MAX_SIZE_MB: Final[int] = 10
DEFAULT_LOG_BACKUP_COUNT: Final[int] = 3
MIN_LOG_MAX_SIZE_MB: Final[int] = 1
MAX_LOG_MAX_SIZE_MB: Final[int] = 100
MAX_LOG_BACKUP_COUNT: Final[int] = 10

# =============================================================================
# Environment Overrides
# =============================================================================

ENV_DATA_DIR: Final[str] = "SESSION_LEDGER_DATA_DIR"
ENV_LOG_LEVEL: Final[str] = "SESSION_LEDGER_LOG_LEVEL"
ENV_DEBUG: Final[str] = "SESSION_LEDGER_DEBUG"

# =============================================================================
# Session Naming
# =============================================================================

DEFAULT_NAMING_BASE_URL: Final[str] = "http://localhost:11434/v1"
DEFAULT_NAMING_MODEL: Final[str] = ""
DEFAULT_NAMING_TIMEOUT: Final[float] = 30.0
# Names are regenerated while the session has at most this many user turns
MSG_COUNT_FOR_SESSION_NAME_GENERATION: Final[int] = 3
MAX_SESSION_NAME_LENGTH: Final[int] = 80
MAX_NAMING_CONTEXT_CHARS: Final[int] = 4000
