"""Interface of the legacy flat-file session loader.

Sessions written before the SQLite store existed live as line-delimited
files in the session directory. Parsing them is the loader's job; the store
only enumerates and imports what the loader returns.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from session_ledger.store.models import Session


@runtime_checkable
class LegacySessionLoader(Protocol):
    """Protocol for legacy session sources."""

    def list_sessions(self, session_dir: Path) -> list[tuple[str, Path]]:
        """List legacy sessions as (name, path) pairs.

        Raises:
            OSError: If the directory cannot be read.
        """
        ...

    def load_session(self, name: str, path: Path) -> "Session":
        """Load one legacy session, including its conversation."""
        ...
