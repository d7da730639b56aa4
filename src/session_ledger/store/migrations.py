"""Database migration functions for the session store.

Each schema version has exactly one hand-written step. Steps are applied in
ascending order, one version at a time, and each applied version is recorded
in ``schema_version`` inside the same transaction as its step.
"""

import logging
import sqlite3
from collections.abc import Callable

from session_ledger.exceptions import SchemaError
from session_ledger.store.schema import (
    CURRENT_SCHEMA_VERSION,
    SCHEMA_SQL,
    SCHEMA_VERSION_TABLE_SQL,
    TOOL_EVENTS_V2_INDEXES_SQL,
    TOOL_EVENTS_V3_COLUMNS,
    TOOL_EVENTS_V3_INDEXES_SQL,
    tool_events_table_sql,
)

logger = logging.getLogger(__name__)


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check whether a table exists in the database."""
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row is not None


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get the current schema version.

    Returns:
        Highest recorded version, or 0 if the schema_version table doesn't exist.
    """
    if not table_exists(conn, "schema_version"):
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row and row[0] is not None else 0


def _execute_statements(conn: sqlite3.Connection, sql: str) -> None:
    """Run a multi-statement script without leaving the current transaction.

    ``executescript`` issues an implicit COMMIT, so statements are split and
    executed one by one instead.
    """
    for statement in sql.split(";"):
        if statement.strip():
            conn.execute(statement)


def _migrate_v0_to_v1(conn: sqlite3.Connection) -> None:
    """Migrate schema from v0 to v1: add version tracking."""
    _execute_statements(conn, SCHEMA_VERSION_TABLE_SQL)


def _migrate_v1_to_v2(conn: sqlite3.Connection) -> None:
    """Migrate schema from v1 to v2: add the tool_events ledger."""
    _execute_statements(conn, tool_events_table_sql(include_v3_columns=False))
    _execute_statements(conn, TOOL_EVENTS_V2_INDEXES_SQL)


def _migrate_v2_to_v3(conn: sqlite3.Connection) -> None:
    """Migrate schema from v2 to v3: add operation_type and file_path to tool_events.

    Idempotent: skips columns that already exist.
    """
    existing_columns = {row[1] for row in conn.execute("PRAGMA table_info(tool_events)").fetchall()}
    for col_name, col_def in TOOL_EVENTS_V3_COLUMNS.items():
        if col_name not in existing_columns:
            conn.execute(f"ALTER TABLE tool_events ADD COLUMN {col_name} {col_def}")

    _execute_statements(conn, TOOL_EVENTS_V3_INDEXES_SQL)


MIGRATIONS: dict[int, Callable[[sqlite3.Connection], None]] = {
    1: _migrate_v0_to_v1,
    2: _migrate_v1_to_v2,
    3: _migrate_v2_to_v3,
}


def run_migrations(conn: sqlite3.Connection, target: int = CURRENT_SCHEMA_VERSION) -> int:
    """Apply schema migrations from the current version up to ``target``.

    Args:
        conn: Autocommit database connection.
        target: Version to migrate to.

    Returns:
        The schema version after migrating.

    Raises:
        SchemaError: If a version between current and target has no migration step.
    """
    current = get_schema_version(conn)

    if current > target:
        logger.warning(
            f"Database schema v{current} is newer than supported v{target}; "
            "leaving it unchanged"
        )
        return current

    if current == target:
        return current

    logger.info(f"Running database migrations from v{current} to v{target}...")
    for version in range(current + 1, target + 1):
        step = MIGRATIONS.get(version)
        if step is None:
            raise SchemaError(f"Unknown migration version: {version}", version=version)

        conn.execute("BEGIN IMMEDIATE")
        try:
            step(conn)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
        logger.info(f"Applied migration v{version}")

    logger.info("All migrations complete")
    return target


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the full current schema in a brand-new database.

    The database is stamped with CURRENT_SCHEMA_VERSION directly; the
    migration path is not replayed. Every statement is IF NOT EXISTS, so a
    file that holds a partial schema without session tables is completed.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        _execute_statements(conn, SCHEMA_SQL)
        conn.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (CURRENT_SCHEMA_VERSION,),
        )
    except Exception:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
    logger.info(f"Session store schema initialized (v{CURRENT_SCHEMA_VERSION})")
