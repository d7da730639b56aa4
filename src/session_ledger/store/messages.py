"""Conversation operations for the session store.

Functions for appending, bulk-replacing and reading a session's messages.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from typing import TYPE_CHECKING

from session_ledger.constants import SQL_NOW
from session_ledger.store.models import Conversation, Message, MessageRole

if TYPE_CHECKING:
    from session_ledger.store.core import SessionStorage

logger = logging.getLogger(__name__)

_INSERT_MESSAGE_SQL = (
    "INSERT INTO messages (session_id, role, content_json, created_timestamp, tokens) "
    "VALUES (?, ?, ?, ?, ?)"
)


def _message_params(session_id: str, message: Message) -> tuple[object, ...]:
    return (
        session_id,
        message.role.value,
        message.content_json(),
        message.created,
        message.tokens,
    )


def insert_messages(conn: sqlite3.Connection, session_id: str, items: Iterable[Message]) -> int:
    """Insert messages using an already-open transaction.

    Returns:
        Number of messages inserted.
    """
    params = [_message_params(session_id, message) for message in items]
    conn.executemany(_INSERT_MESSAGE_SQL, params)
    return len(params)


def add_message(store: SessionStorage, session_id: str, message: Message) -> None:
    """Append one message and bump the session's updated_at.

    Args:
        store: The SessionStorage instance.
        session_id: Owning session.
        message: Message to append.
    """
    params = _message_params(session_id, message)
    conn = store._get_connection()
    conn.execute(_INSERT_MESSAGE_SQL, params)
    conn.execute(f"UPDATE sessions SET updated_at = {SQL_NOW} WHERE id = ?", (session_id,))


def replace_conversation(
    store: SessionStorage, session_id: str, conversation: Conversation
) -> None:
    """Replace all of a session's messages in one transaction.

    Either every message of ``conversation`` is visible afterwards or the
    previous messages are left untouched.

    Args:
        store: The SessionStorage instance.
        session_id: Owning session.
        conversation: New message sequence.
    """
    with store._transaction() as conn:
        conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
        count = insert_messages(conn, session_id, conversation)
        conn.execute(f"UPDATE sessions SET updated_at = {SQL_NOW} WHERE id = ?", (session_id,))

    logger.debug(f"Replaced conversation for session {session_id} ({count} messages)")


def get_conversation(store: SessionStorage, session_id: str) -> Conversation:
    """Read a session's messages ordered by storage timestamp.

    Rows whose role is not user/assistant are skipped.

    Raises:
        SerializationError: If a row's content is not valid JSON.
    """
    cursor = store._get_connection().execute(
        """
        SELECT role, content_json, created_timestamp, tokens
        FROM messages
        WHERE session_id = ?
        ORDER BY timestamp, id
        """,
        (session_id,),
    )

    known_roles = MessageRole.values()
    conversation = Conversation()
    for row in cursor.fetchall():
        if row["role"] not in known_roles:
            continue
        conversation.append(Message.from_row(row))
    return conversation
