"""Core SessionStorage class for the session store.

Contains the main SessionStorage class with connection management and
delegation to operation modules.
"""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from session_ledger.constants import DEFAULT_BUSY_TIMEOUT_SECONDS
from session_ledger.exceptions import StorageUnavailableError
from session_ledger.store import legacy_import, messages, sessions, stats, tool_events
from session_ledger.store.migrations import (
    create_schema,
    get_schema_version,
    run_migrations,
    table_exists,
)
from session_ledger.store.models import (
    Conversation,
    Message,
    Session,
    SessionInsights,
    ToolEvent,
    ToolEventStatus,
    ToolStats,
)

if TYPE_CHECKING:
    from session_ledger.legacy import LegacySessionLoader
    from session_ledger.store.legacy_import import ImportReport
    from session_ledger.store.sessions import SessionUpdateBuilder

logger = logging.getLogger(__name__)


class SessionStorage:
    """SQLite-based store for sessions, conversations and tool events.

    Thread-safe: every thread gets its own connection, all configured for
    WAL so readers never block on a writer. Connections run in autocommit
    mode and atomic multi-statement operations use explicit transactions.
    """

    def __init__(
        self,
        db_path: Path,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
        legacy_loader: "LegacySessionLoader | None" = None,
    ):
        """Initialize the session storage.

        Creates the schema for a new database (and runs the one-time legacy
        import when a loader is given), or migrates an existing one.

        Args:
            db_path: Path to SQLite database file.
            busy_timeout: Seconds a writer waits on a locked database.
            legacy_loader: Source of pre-existing flat-file sessions, imported
                only when the database file is created by this call.

        Raises:
            StorageUnavailableError: If the database cannot be opened.
            SchemaError: If the schema cannot be migrated.
        """
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self.legacy_loader = legacy_loader
        self.import_report: ImportReport | None = None
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._ensure_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "conn", None) is None:
            try:
                conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=self.busy_timeout,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.execute("PRAGMA foreign_keys = ON")
                conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout * 1000)}")
            except sqlite3.Error as e:
                raise StorageUnavailableError(self.db_path, e) from e
            with self._connections_lock:
                self._connections.append(conn)
            self._local.conn = conn
        connection: sqlite3.Connection = self._local.conn
        return connection

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Context manager for explicit database transactions.

        Args:
            immediate: Take the write lock up front (BEGIN IMMEDIATE), so
                read-then-write sequences cannot interleave with other writers.
        """
        conn = self._get_connection()
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield conn
        except Exception as e:
            conn.execute("ROLLBACK")
            if isinstance(e, sqlite3.Error):
                logger.error(f"Database transaction error: {e}")
            raise
        conn.execute("COMMIT")

    def _ensure_schema(self) -> None:
        """Create the schema for a new database or migrate an existing one.

        A file without a sessions table (empty, or left behind by an
        interrupted first start) is initialized like a new database.
        """
        is_new = not self.db_path.exists() or self.db_path.stat().st_size == 0
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(self.db_path, e) from e

        conn = self._get_connection()
        is_new = is_new or not table_exists(conn, "sessions")
        if is_new:
            create_schema(conn)
        else:
            run_migrations(conn)

        logger.info(f"Session storage ready at {self.db_path} (v{get_schema_version(conn)})")

        if is_new and self.legacy_loader is not None:
            self.import_report = legacy_import.import_legacy_sessions(
                self, self.legacy_loader, self.db_path.parent
            )

    def get_schema_version(self) -> int:
        """Get current database schema version."""
        return get_schema_version(self._get_connection())

    def close(self) -> None:
        """Close every connection opened by this storage, across threads."""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()

    # ==========================================================================
    # Session operations - delegate to sessions module
    # ==========================================================================

    def create_session(self, working_dir: Path, description: str = "") -> Session:
        """Create a session with the next id for today."""
        return sessions.create_session(self, working_dir, description)

    def get_session(self, session_id: str, include_messages: bool = False) -> Session:
        """Get session by ID."""
        return sessions.get_session(self, session_id, include_messages)

    def update_session(self, session_id: str) -> "SessionUpdateBuilder":
        """Start a partial update of a session."""
        return sessions.SessionUpdateBuilder(self, session_id)

    def list_sessions(self) -> list[Session]:
        """List sessions that have messages, most recently updated first."""
        return sessions.list_sessions(self)

    def delete_session(self, session_id: str) -> None:
        """Delete a session with its messages and tool events."""
        sessions.delete_session(self, session_id)

    def get_insights(self) -> SessionInsights:
        """Get totals across all sessions."""
        return sessions.get_insights(self)

    # ==========================================================================
    # Conversation operations - delegate to messages module
    # ==========================================================================

    def add_message(self, session_id: str, message: Message) -> None:
        """Append a message to a session."""
        messages.add_message(self, session_id, message)

    def replace_conversation(self, session_id: str, conversation: Conversation) -> None:
        """Atomically replace a session's messages."""
        messages.replace_conversation(self, session_id, conversation)

    def get_conversation(self, session_id: str) -> Conversation:
        """Read a session's messages in storage order."""
        return messages.get_conversation(self, session_id)

    # ==========================================================================
    # Tool event operations - delegate to tool_events module
    # ==========================================================================

    def record_tool_start(
        self,
        session_id: str,
        tool_name: str,
        operation_type: str | None = None,
        file_path: str | None = None,
    ) -> int:
        """Record the start of a tool invocation."""
        return tool_events.record_tool_start(
            self, session_id, tool_name, operation_type, file_path
        )

    def record_tool_complete(
        self,
        event_id: int,
        status: ToolEventStatus | str,
        error_message: str | None = None,
    ) -> bool:
        """Record the completion of a tool invocation."""
        return tool_events.record_tool_complete(self, event_id, status, error_message)

    def get_tool_event(self, event_id: int) -> ToolEvent | None:
        """Get a tool event by ID."""
        return tool_events.get_tool_event(self, event_id)

    # ==========================================================================
    # Statistics - delegate to stats module
    # ==========================================================================

    def get_tool_stats(self, session_id: str) -> ToolStats:
        """Compute tool statistics for a session."""
        return stats.get_tool_stats(self, session_id)
