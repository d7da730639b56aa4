"""Automatic session renaming.

Early in a session the description is regenerated from the conversation
after each turn; once the session has more user turns than the threshold the
name is considered settled and left alone.
"""

import asyncio
import logging

from session_ledger.constants import MSG_COUNT_FOR_SESSION_NAME_GENERATION
from session_ledger.naming.base import BaseSessionNamer
from session_ledger.store.core import SessionStorage

logger = logging.getLogger(__name__)


async def maybe_update_description(
    storage: SessionStorage,
    session_id: str,
    namer: BaseSessionNamer,
    max_user_turns: int = MSG_COUNT_FOR_SESSION_NAME_GENERATION,
) -> bool:
    """Regenerate a session's description while the session is young.

    Args:
        storage: Session storage.
        session_id: Session to rename.
        namer: Name provider.
        max_user_turns: Rename only while the session has at most this many
            user messages.

    Returns:
        True if the description was replaced.

    Raises:
        SessionNotFoundError: If the session doesn't exist.
        NamingError: If the provider fails.
    """
    # SQLite calls block; run them off the event loop
    session = await asyncio.to_thread(storage.get_session, session_id, include_messages=True)
    conversation = session.conversation
    if not conversation:
        return False

    user_turns = conversation.user_message_count()
    if user_turns > max_user_turns:
        logger.debug(f"Session {session_id} has {user_turns} user turns; keeping its name")
        return False

    name = await namer.generate_session_name(conversation)
    await asyncio.to_thread(storage.update_session(session_id).description(name).apply)
    logger.info(f"Renamed session {session_id} to {name!r}")
    return True
