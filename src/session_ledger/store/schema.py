"""Database schema for the session store.

Contains the schema version and the SQL used to create a database from
scratch. Column definitions are shared with the migration steps so that a
freshly created database and a migrated one end up with the same columns,
defaults and indexes.
"""

from session_ledger.constants import SQL_NOW

# Schema version for migrations
# v1: Added schema_version table (append-only log of applied versions)
# v2: Added tool_events table with session/tool_name/status indexes
# v3: Added operation_type and file_path to tool_events (+ indexes)
CURRENT_SCHEMA_VERSION = 3

SCHEMA_VERSION_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT ({SQL_NOW})
);
"""

# Tables that predate version tracking (a "v0" database)
BASELINE_SQL = f"""
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    description TEXT NOT NULL DEFAULT '',
    working_dir TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT ({SQL_NOW}),
    updated_at TIMESTAMP DEFAULT ({SQL_NOW}),
    extension_data TEXT DEFAULT '{{}}',
    total_tokens INTEGER,
    input_tokens INTEGER,
    output_tokens INTEGER,
    accumulated_total_tokens INTEGER,
    accumulated_input_tokens INTEGER,
    accumulated_output_tokens INTEGER,
    schedule_id TEXT,
    recipe_json TEXT
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL REFERENCES sessions(id),
    role TEXT NOT NULL,
    content_json TEXT NOT NULL,
    created_timestamp INTEGER NOT NULL,
    timestamp TIMESTAMP DEFAULT ({SQL_NOW}),
    tokens INTEGER
);

CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id);
CREATE INDEX IF NOT EXISTS idx_messages_timestamp ON messages(timestamp);
CREATE INDEX IF NOT EXISTS idx_sessions_updated ON sessions(updated_at DESC);
"""

# tool_events as introduced in v2
TOOL_EVENTS_V2_COLUMNS = f"""
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    tool_name TEXT NOT NULL,
    status TEXT NOT NULL,
    error_message TEXT,
    started_at TIMESTAMP DEFAULT ({SQL_NOW}),
    completed_at TIMESTAMP,
    duration_ms INTEGER"""

TOOL_EVENTS_FOREIGN_KEY = (
    "    FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE"
)

TOOL_EVENTS_V2_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_tool_events_session ON tool_events(session_id);
CREATE INDEX IF NOT EXISTS idx_tool_events_tool_name ON tool_events(tool_name);
CREATE INDEX IF NOT EXISTS idx_tool_events_status ON tool_events(status);
"""

# Columns added in v3, in the order ALTER TABLE appends them
TOOL_EVENTS_V3_COLUMNS: dict[str, str] = {
    "operation_type": "TEXT",
    "file_path": "TEXT",
}

TOOL_EVENTS_V3_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_tool_events_operation ON tool_events(operation_type);
CREATE INDEX IF NOT EXISTS idx_tool_events_file_path ON tool_events(file_path);
"""


def tool_events_table_sql(include_v3_columns: bool) -> str:
    """Build the CREATE TABLE statement for tool_events.

    Args:
        include_v3_columns: Append the v3 columns after the v2 ones.
    """
    columns = TOOL_EVENTS_V2_COLUMNS
    if include_v3_columns:
        for name, definition in TOOL_EVENTS_V3_COLUMNS.items():
            columns += f",\n    {name} {definition}"
    return (
        "CREATE TABLE IF NOT EXISTS tool_events (\n"
        f"{columns},\n{TOOL_EVENTS_FOREIGN_KEY}\n);\n"
    )


# Full current schema for a brand-new database
SCHEMA_SQL = (
    SCHEMA_VERSION_TABLE_SQL
    + BASELINE_SQL
    + tool_events_table_sql(include_v3_columns=True)
    + TOOL_EVENTS_V2_INDEXES_SQL
    + TOOL_EVENTS_V3_INDEXES_SQL
)
