"""Base session-naming interface."""

from abc import ABC, abstractmethod

from session_ledger.store.models import Conversation


class BaseSessionNamer(ABC):
    """Base class for session-name providers."""

    @abstractmethod
    async def generate_session_name(self, conversation: Conversation) -> str:
        """Produce a short display name for a conversation.

        Args:
            conversation: Messages of the session so far.

        Returns:
            Single-line name.

        Raises:
            NamingError: If no name could be produced.
        """
        pass
