"""Data models for the session store.

Dataclasses representing sessions, messages, tool events and the derived
statistics computed over them.
"""

import json
import logging
import sqlite3
from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from session_ledger.constants import (
    ROLE_ASSISTANT,
    ROLE_USER,
    TERMINAL_TOOL_STATUSES,
    TOOL_STATUS_CANCELLED,
    TOOL_STATUS_ERROR,
    TOOL_STATUS_RUNNING,
    TOOL_STATUS_SUCCESS,
)
from session_ledger.exceptions import SerializationError

logger = logging.getLogger(__name__)


class MessageRole(str, Enum):
    """Roles that may be persisted in the messages table."""

    USER = ROLE_USER
    ASSISTANT = ROLE_ASSISTANT

    @classmethod
    def values(cls) -> list[str]:
        """Return list of all role values."""
        return [r.value for r in cls]


class ToolEventStatus(str, Enum):
    """Lifecycle states of a tool event."""

    RUNNING = TOOL_STATUS_RUNNING
    SUCCESS = TOOL_STATUS_SUCCESS
    ERROR = TOOL_STATUS_ERROR
    CANCELLED = TOOL_STATUS_CANCELLED

    @property
    def is_terminal(self) -> bool:
        """Whether this status ends the event."""
        return self.value in TERMINAL_TOOL_STATUSES

    @classmethod
    def values(cls) -> list[str]:
        """Return list of all status values."""
        return [s.value for s in cls]


@dataclass
class Message:
    """A single conversation turn.

    ``created`` is the caller's logical clock. The storage timestamp used for
    ordering is assigned by the database and never exposed here.
    """

    role: MessageRole
    content: Any
    created: int
    tokens: int | None = None

    def __post_init__(self) -> None:
        # Raises ValueError for anything other than user/assistant
        self.role = MessageRole(self.role)

    def content_json(self) -> str:
        """Serialize content for the content_json column."""
        try:
            return json.dumps(self.content)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                "Message content is not JSON-serializable", column="content_json", cause=e
            ) from e

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Message":
        """Create from a messages row. Role must already be validated."""
        try:
            content = json.loads(row["content_json"])
        except (TypeError, ValueError) as e:
            raise SerializationError(
                "Malformed message content", column="content_json", cause=e
            ) from e
        return cls(
            role=MessageRole(row["role"]),
            content=content,
            created=row["created_timestamp"],
            tokens=row["tokens"],
        )


@dataclass
class Conversation:
    """Ordered sequence of messages belonging to a session."""

    messages: list[Message] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def user_message_count(self) -> int:
        """Count messages sent by the user."""
        return sum(1 for m in self.messages if m.role is MessageRole.USER)


def _load_extension_data(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Malformed extension_data in session row, using {}")
        return {}
    return data if isinstance(data, dict) else {}


def _load_recipe(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        return json.loads(raw)  # type: ignore[no-any-return]
    except ValueError:
        logger.warning("Malformed recipe_json in session row, ignoring it")
        return None


@dataclass
class Session:
    """A working context between a user and the agent."""

    id: str
    working_dir: Path
    description: str = ""
    created_at: str | None = None
    updated_at: str | None = None
    extension_data: dict[str, Any] = field(default_factory=dict)
    total_tokens: int | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    accumulated_total_tokens: int | None = None
    accumulated_input_tokens: int | None = None
    accumulated_output_tokens: int | None = None
    schedule_id: str | None = None
    recipe: dict[str, Any] | None = None
    conversation: Conversation | None = None
    message_count: int = 0

    def to_row(self) -> dict[str, Any]:
        """Convert to database row (used when importing a complete session)."""
        try:
            extension_data = json.dumps(self.extension_data)
            recipe_json = json.dumps(self.recipe) if self.recipe is not None else None
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Session {self.id} is not serializable", cause=e) from e
        return {
            "id": self.id,
            "description": self.description,
            "working_dir": str(self.working_dir),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "extension_data": extension_data,
            "total_tokens": self.total_tokens,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "accumulated_total_tokens": self.accumulated_total_tokens,
            "accumulated_input_tokens": self.accumulated_input_tokens,
            "accumulated_output_tokens": self.accumulated_output_tokens,
            "schedule_id": self.schedule_id,
            "recipe_json": recipe_json,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Session":
        """Create from database row."""
        keys = row.keys()
        return cls(
            id=row["id"],
            working_dir=Path(row["working_dir"]),
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            extension_data=_load_extension_data(row["extension_data"]),
            total_tokens=row["total_tokens"],
            input_tokens=row["input_tokens"],
            output_tokens=row["output_tokens"],
            accumulated_total_tokens=row["accumulated_total_tokens"],
            accumulated_input_tokens=row["accumulated_input_tokens"],
            accumulated_output_tokens=row["accumulated_output_tokens"],
            schedule_id=row["schedule_id"],
            recipe=_load_recipe(row["recipe_json"]),
            message_count=row["message_count"] if "message_count" in keys else 0,
        )


class _Unset:
    """Marker for patch fields that were never set."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class SessionPatch:
    """Partial update of a session.

    Every field is three-state: ``UNSET`` (leave alone), ``None`` (set the
    column to NULL) or a value.
    """

    description: Any = UNSET
    working_dir: Any = UNSET
    extension_data: Any = UNSET
    total_tokens: Any = UNSET
    input_tokens: Any = UNSET
    output_tokens: Any = UNSET
    accumulated_total_tokens: Any = UNSET
    accumulated_input_tokens: Any = UNSET
    accumulated_output_tokens: Any = UNSET
    schedule_id: Any = UNSET
    recipe: Any = UNSET

    # Fields backed by NOT NULL (or non-nullable by contract) columns
    REQUIRED_FIELDS = ("description", "working_dir", "extension_data")

    def set_fields(self) -> dict[str, Any]:
        """Return the explicitly set fields in declaration order."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {name: value for name, value in values.items() if value is not UNSET}

    def to_columns(self) -> dict[str, Any]:
        """Map set fields to column names and storage values.

        Raises:
            ValueError: If a required field was set to None.
            SerializationError: If extension data or a recipe cannot be serialized.
        """
        columns: dict[str, Any] = {}
        for name, value in self.set_fields().items():
            if value is None and name in self.REQUIRED_FIELDS:
                raise ValueError(f"{name} cannot be set to None")
            if name == "working_dir":
                columns[name] = str(value)
            elif name == "extension_data":
                columns[name] = _dump_json(value, name)
            elif name == "recipe":
                columns["recipe_json"] = (
                    _dump_json(value, "recipe_json") if value is not None else None
                )
            else:
                columns[name] = value
        return columns


def _dump_json(value: Any, column: str) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize {column}", column=column, cause=e) from e


@dataclass
class SessionInsights:
    """Totals across all sessions."""

    total_sessions: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"total_sessions": self.total_sessions, "total_tokens": self.total_tokens}


@dataclass
class ToolEvent:
    """One recorded start-to-completion span of a tool invocation."""

    id: int
    session_id: str
    tool_name: str
    status: ToolEventStatus
    error_message: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    duration_ms: int | None = None
    operation_type: str | None = None
    file_path: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ToolEvent":
        """Create from database row."""
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            tool_name=row["tool_name"],
            status=ToolEventStatus(row["status"]),
            error_message=row["error_message"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            duration_ms=row["duration_ms"],
            operation_type=row["operation_type"],
            file_path=row["file_path"],
        )


@dataclass
class FileOperation:
    """A tool event that touched a file."""

    file_path: str
    operation: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "operation": self.operation,
            "timestamp": self.timestamp,
        }


@dataclass
class ToolStats:
    """Aggregates over a session's tool events."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    cancelled_calls: int = 0
    avg_duration_ms: float = 0.0
    calls_by_tool: dict[str, int] = field(default_factory=dict)
    calls_by_operation: dict[str, int] = field(default_factory=dict)
    file_operations: list[FileOperation] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Fraction of all calls that succeeded (0.0 when there are none)."""
        if self.total_calls == 0:
            return 0.0
        return self.successful_calls / self.total_calls

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "cancelled_calls": self.cancelled_calls,
            "avg_duration_ms": self.avg_duration_ms,
            "success_rate": self.success_rate,
            "calls_by_tool": dict(self.calls_by_tool),
            "calls_by_operation": dict(self.calls_by_operation),
            "file_operations": [op.to_dict() for op in self.file_operations],
        }
