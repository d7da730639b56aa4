"""Statistics operations for the session store.

Aggregates are computed from tool_events on every call; nothing is cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from session_ledger.constants import TOOL_STATUS_CANCELLED, TOOL_STATUS_ERROR, TOOL_STATUS_SUCCESS
from session_ledger.store.models import FileOperation, ToolStats

if TYPE_CHECKING:
    from session_ledger.store.core import SessionStorage


def get_tool_stats(store: SessionStorage, session_id: str) -> ToolStats:
    """Get tool statistics for a session.

    Args:
        store: The SessionStorage instance.
        session_id: Session to query.

    Returns:
        ToolStats with status counts, the average duration over events that
        have one (0.0 when none do), per-tool and per-operation call counts,
        and the chronological list of file operations.
    """
    conn = store._get_connection()

    # Status counts and average duration
    row = conn.execute(
        """
        SELECT
            COUNT(*) AS total_calls,
            COALESCE(SUM(CASE WHEN status = ? THEN 1 ELSE 0 END), 0) AS successful_calls,
            COALESCE(SUM(CASE WHEN status = ? THEN 1 ELSE 0 END), 0) AS failed_calls,
            COALESCE(SUM(CASE WHEN status = ? THEN 1 ELSE 0 END), 0) AS cancelled_calls,
            AVG(duration_ms) AS avg_duration_ms
        FROM tool_events
        WHERE session_id = ?
        """,
        (TOOL_STATUS_SUCCESS, TOOL_STATUS_ERROR, TOOL_STATUS_CANCELLED, session_id),
    ).fetchone()

    # Calls by tool name
    cursor = conn.execute(
        """
        SELECT tool_name, COUNT(*) AS count
        FROM tool_events
        WHERE session_id = ?
        GROUP BY tool_name
        ORDER BY count DESC, tool_name
        """,
        (session_id,),
    )
    calls_by_tool = {r["tool_name"]: r["count"] for r in cursor.fetchall()}

    # Calls by operation type
    cursor = conn.execute(
        """
        SELECT operation_type, COUNT(*) AS count
        FROM tool_events
        WHERE session_id = ? AND operation_type IS NOT NULL
        GROUP BY operation_type
        ORDER BY count DESC, operation_type
        """,
        (session_id,),
    )
    calls_by_operation = {r["operation_type"]: r["count"] for r in cursor.fetchall()}

    # File operation timeline
    cursor = conn.execute(
        """
        SELECT file_path, operation_type, started_at
        FROM tool_events
        WHERE session_id = ? AND file_path IS NOT NULL AND operation_type IS NOT NULL
        ORDER BY started_at, id
        """,
        (session_id,),
    )
    file_operations = [
        FileOperation(
            file_path=r["file_path"], operation=r["operation_type"], timestamp=r["started_at"]
        )
        for r in cursor.fetchall()
    ]

    return ToolStats(
        total_calls=row["total_calls"],
        successful_calls=row["successful_calls"],
        failed_calls=row["failed_calls"],
        cancelled_calls=row["cancelled_calls"],
        avg_duration_ms=float(row["avg_duration_ms"] or 0.0),
        calls_by_tool=calls_by_tool,
        calls_by_operation=calls_by_operation,
        file_operations=file_operations,
    )
