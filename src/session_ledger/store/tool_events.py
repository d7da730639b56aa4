"""Tool event operations for the session store.

Functions for recording the start and completion of tool invocations.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from session_ledger.constants import SQL_NOW, TOOL_STATUS_RUNNING
from session_ledger.exceptions import ToolEventNotFoundError
from session_ledger.store.models import ToolEvent, ToolEventStatus

if TYPE_CHECKING:
    from session_ledger.store.core import SessionStorage

logger = logging.getLogger(__name__)


def record_tool_start(
    store: SessionStorage,
    session_id: str,
    tool_name: str,
    operation_type: str | None = None,
    file_path: str | None = None,
) -> int:
    """Insert a running tool event.

    Args:
        store: The SessionStorage instance.
        session_id: Owning session.
        tool_name: Raw tool name as invoked.
        operation_type: Normalized operation category (see classifier).
        file_path: File the tool touches, if any.

    Returns:
        ID of the new event, used to complete it later.
    """
    cursor = store._get_connection().execute(
        """
        INSERT INTO tool_events (session_id, tool_name, status, operation_type, file_path)
        VALUES (?, ?, ?, ?, ?)
        """,
        (session_id, tool_name, TOOL_STATUS_RUNNING, operation_type, file_path),
    )
    event_id = cursor.lastrowid or 0
    logger.debug(f"Tool event {event_id} started: {tool_name} (session {session_id})")
    return event_id


def record_tool_complete(
    store: SessionStorage,
    event_id: int,
    status: ToolEventStatus | str,
    error_message: str | None = None,
) -> bool:
    """Move a running tool event to a terminal status.

    Sets the completion timestamp and ``duration_ms`` (wall-clock milliseconds
    since start, never negative). The first completion wins: completing an
    event that is no longer running leaves it untouched.

    Args:
        store: The SessionStorage instance.
        event_id: Event returned by record_tool_start.
        status: success, error or cancelled.
        error_message: Optional failure detail.

    Returns:
        True if the event was completed by this call, False if it had
        already been completed.

    Raises:
        ValueError: If status is not terminal.
        ToolEventNotFoundError: If no event has this id.
    """
    status = ToolEventStatus(status)
    if not status.is_terminal:
        raise ValueError(f"Cannot complete a tool event with status '{status.value}'")

    conn = store._get_connection()
    cursor = conn.execute(
        f"""
        UPDATE tool_events
        SET status = ?,
            error_message = ?,
            completed_at = {SQL_NOW},
            duration_ms = MAX(
                0,
                CAST(ROUND((julianday({SQL_NOW}) - julianday(started_at)) * 86400000)
                     AS INTEGER)
            )
        WHERE id = ? AND status = ?
        """,
        (status.value, error_message, event_id, TOOL_STATUS_RUNNING),
    )
    if cursor.rowcount:
        logger.debug(f"Tool event {event_id} completed: {status.value}")
        return True

    row = conn.execute("SELECT status FROM tool_events WHERE id = ?", (event_id,)).fetchone()
    if row is None:
        raise ToolEventNotFoundError(event_id)
    logger.warning(
        f"Tool event {event_id} already completed ({row['status']}); ignoring {status.value}"
    )
    return False


def get_tool_event(store: SessionStorage, event_id: int) -> ToolEvent | None:
    """Get a tool event by ID."""
    row = (
        store._get_connection()
        .execute("SELECT * FROM tool_events WHERE id = ?", (event_id,))
        .fetchone()
    )
    return ToolEvent.from_row(row) if row else None
