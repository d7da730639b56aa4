"""Session operations for the session store.

Functions for creating, retrieving, updating, listing and deleting sessions.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from session_ledger.constants import SESSION_ID_DATE_FORMAT, SESSION_ID_SEPARATOR, SQL_NOW
from session_ledger.exceptions import SessionNotFoundError
from session_ledger.store import messages
from session_ledger.store.models import Session, SessionInsights, SessionPatch

if TYPE_CHECKING:
    from session_ledger.store.core import SessionStorage

logger = logging.getLogger(__name__)


def _today_prefix() -> str:
    today = datetime.now(timezone.utc).strftime(SESSION_ID_DATE_FORMAT)
    return f"{today}{SESSION_ID_SEPARATOR}"


def create_session(store: SessionStorage, working_dir: Path, description: str = "") -> Session:
    """Create a new session with the next id for the current UTC day.

    The max-then-insert sequence runs under BEGIN IMMEDIATE, so concurrent
    creators wait for each other instead of allocating the same id.

    Args:
        store: The SessionStorage instance.
        working_dir: Directory the session works in.
        description: Display name.

    Returns:
        The freshly read-back Session.
    """
    prefix = _today_prefix()
    with store._transaction(immediate=True) as conn:
        row = conn.execute(
            "SELECT MAX(CAST(SUBSTR(id, ?) AS INTEGER)) FROM sessions "
            "WHERE SUBSTR(id, 1, ?) = ?",
            (len(prefix) + 1, len(prefix), prefix),
        ).fetchone()
        max_index = row[0] if row and row[0] is not None else 0
        session_id = f"{prefix}{max_index + 1}"
        conn.execute(
            "INSERT INTO sessions (id, description, working_dir, extension_data) "
            "VALUES (?, ?, ?, '{}')",
            (session_id, description, str(working_dir)),
        )

    logger.debug(f"Created session {session_id} in {working_dir}")
    return get_session(store, session_id)


def get_session(store: SessionStorage, session_id: str, include_messages: bool = False) -> Session:
    """Get session by ID.

    Args:
        store: The SessionStorage instance.
        session_id: Session to fetch.
        include_messages: Load the full conversation as well.

    Returns:
        The Session. ``message_count`` is the conversation length when
        messages are included, otherwise a separate COUNT query.

    Raises:
        SessionNotFoundError: If no session has this id.
    """
    conn = store._get_connection()
    row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
    if row is None:
        raise SessionNotFoundError(session_id)

    session = Session.from_row(row)
    if include_messages:
        session.conversation = messages.get_conversation(store, session_id)
        session.message_count = len(session.conversation)
    else:
        session.message_count = conn.execute(
            "SELECT COUNT(*) FROM messages WHERE session_id = ?", (session_id,)
        ).fetchone()[0]
    return session


def apply_patch(store: SessionStorage, session_id: str, patch: SessionPatch) -> None:
    """Apply a partial update to a session.

    Only explicitly set fields are written; ``updated_at`` is refreshed
    whenever at least one field is set. An empty patch does nothing.

    Raises:
        SessionNotFoundError: If a non-empty patch targets an unknown session.
        ValueError: If a required field was set to None.
    """
    columns = patch.to_columns()
    if not columns:
        return

    assignments = ", ".join(f"{name} = ?" for name in columns)
    cursor = store._get_connection().execute(
        f"UPDATE sessions SET {assignments}, updated_at = {SQL_NOW} WHERE id = ?",
        (*columns.values(), session_id),
    )
    if cursor.rowcount == 0:
        raise SessionNotFoundError(session_id)
    logger.debug(f"Updated session {session_id}: {', '.join(columns)}")


class SessionUpdateBuilder:
    """Fluent builder for partial session updates.

    Example:
        storage.update_session(session_id).description("Refactor").total_tokens(None).apply()
    """

    def __init__(self, store: SessionStorage, session_id: str):
        self._store = store
        self.session_id = session_id
        self.patch = SessionPatch()

    def _set(self, name: str, value: Any) -> SessionUpdateBuilder:
        setattr(self.patch, name, value)
        return self

    def description(self, value: str) -> SessionUpdateBuilder:
        return self._set("description", value)

    def working_dir(self, value: Path) -> SessionUpdateBuilder:
        return self._set("working_dir", value)

    def extension_data(self, value: dict[str, Any]) -> SessionUpdateBuilder:
        return self._set("extension_data", value)

    def total_tokens(self, value: int | None) -> SessionUpdateBuilder:
        return self._set("total_tokens", value)

    def input_tokens(self, value: int | None) -> SessionUpdateBuilder:
        return self._set("input_tokens", value)

    def output_tokens(self, value: int | None) -> SessionUpdateBuilder:
        return self._set("output_tokens", value)

    def accumulated_total_tokens(self, value: int | None) -> SessionUpdateBuilder:
        return self._set("accumulated_total_tokens", value)

    def accumulated_input_tokens(self, value: int | None) -> SessionUpdateBuilder:
        return self._set("accumulated_input_tokens", value)

    def accumulated_output_tokens(self, value: int | None) -> SessionUpdateBuilder:
        return self._set("accumulated_output_tokens", value)

    def schedule_id(self, value: str | None) -> SessionUpdateBuilder:
        return self._set("schedule_id", value)

    def recipe(self, value: dict[str, Any] | None) -> SessionUpdateBuilder:
        return self._set("recipe", value)

    def apply(self) -> None:
        """Write the recorded fields."""
        apply_patch(self._store, self.session_id, self.patch)


def list_sessions(store: SessionStorage) -> list[Session]:
    """List sessions with at least one message, most recently updated first.

    Returns:
        Sessions annotated with their live message count.
    """
    cursor = store._get_connection().execute(
        """
        SELECT s.*, COUNT(m.id) AS message_count
        FROM sessions s
        INNER JOIN messages m ON m.session_id = s.id
        GROUP BY s.id
        ORDER BY s.updated_at DESC
        """
    )
    return [Session.from_row(row) for row in cursor.fetchall()]


def delete_session(store: SessionStorage, session_id: str) -> None:
    """Delete a session, its messages and (by cascade) its tool events.

    Raises:
        SessionNotFoundError: If no session has this id.
    """
    with store._transaction(immediate=True) as conn:
        exists = conn.execute("SELECT 1 FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if exists is None:
            raise SessionNotFoundError(session_id)
        conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
        conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    logger.info(f"Deleted session {session_id}")


def get_insights(store: SessionStorage) -> SessionInsights:
    """Count sessions and sum their token usage.

    Each session contributes its accumulated total when present, else its
    current total, else zero.
    """
    row = store._get_connection().execute(
        """
        SELECT COUNT(*) AS total_sessions,
               COALESCE(SUM(COALESCE(accumulated_total_tokens, total_tokens, 0)), 0)
                   AS total_tokens
        FROM sessions
        """
    ).fetchone()
    return SessionInsights(total_sessions=row["total_sessions"], total_tokens=row["total_tokens"])
