"""SQLite-backed session store.

Persists sessions, their conversations and tool events, and answers
aggregate questions over them.

Example:
    >>> storage = SessionStorage(Path("sessions.db"))
    >>> session = storage.create_session(Path.cwd(), "Fix login bug")
    >>> event_id = storage.record_tool_start(session.id, "developer__shell")
    >>> storage.record_tool_complete(event_id, "success")
    True
"""

from session_ledger.store.core import SessionStorage
from session_ledger.store.handle import get_storage, reset_storage
from session_ledger.store.legacy_import import ImportReport
from session_ledger.store.models import (
    UNSET,
    Conversation,
    FileOperation,
    Message,
    MessageRole,
    Session,
    SessionInsights,
    SessionPatch,
    ToolEvent,
    ToolEventStatus,
    ToolStats,
)
from session_ledger.store.schema import CURRENT_SCHEMA_VERSION
from session_ledger.store.sessions import SessionUpdateBuilder

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "Conversation",
    "FileOperation",
    "ImportReport",
    "Message",
    "MessageRole",
    "Session",
    "SessionInsights",
    "SessionPatch",
    "SessionStorage",
    "SessionUpdateBuilder",
    "ToolEvent",
    "ToolEventStatus",
    "ToolStats",
    "UNSET",
    "get_storage",
    "reset_storage",
]
