"""LLM-generated session names."""

from session_ledger.naming.base import BaseSessionNamer
from session_ledger.naming.maintenance import maybe_update_description
from session_ledger.naming.providers import OpenAICompatSessionNamer, create_namer_from_config

__all__ = [
    "BaseSessionNamer",
    "OpenAICompatSessionNamer",
    "create_namer_from_config",
    "maybe_update_description",
]
