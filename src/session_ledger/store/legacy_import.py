"""One-time import of legacy flat-file sessions.

Runs only when SessionStorage creates its database file. Every session is
imported in its own transaction; failures are logged and skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from session_ledger.store.messages import insert_messages
from session_ledger.store.models import Session

if TYPE_CHECKING:
    from session_ledger.legacy import LegacySessionLoader
    from session_ledger.store.core import SessionStorage

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    """Outcome of a legacy import run."""

    imported: int = 0
    failed: int = 0
    # session name -> error text
    failures: dict[str, str] = field(default_factory=dict)

    def record_failure(self, name: str, error: Exception) -> None:
        self.failed += 1
        self.failures[name] = str(error)


def import_legacy_session(store: SessionStorage, session: Session) -> None:
    """Insert a complete session (row and conversation) in one transaction.

    Timestamps left unset on the session fall back to the column defaults.
    """
    row = {key: value for key, value in session.to_row().items() if value is not None}
    columns = ", ".join(row)
    placeholders = ", ".join(f":{key}" for key in row)

    with store._transaction(immediate=True) as conn:
        conn.execute(f"INSERT INTO sessions ({columns}) VALUES ({placeholders})", row)
        if session.conversation is not None:
            insert_messages(conn, session.id, session.conversation)


def import_legacy_sessions(
    store: SessionStorage, loader: LegacySessionLoader, session_dir: Path
) -> ImportReport:
    """Import every session the loader can find.

    Args:
        store: The SessionStorage instance (freshly created).
        loader: Legacy session source.
        session_dir: Directory holding the legacy session files.

    Returns:
        ImportReport with success and failure counts.
    """
    report = ImportReport()

    try:
        legacy_sessions = loader.list_sessions(session_dir)
    except Exception as e:
        logger.warning(f"No legacy sessions found to import: {e}")
        return report

    if not legacy_sessions:
        return report

    logger.info(f"Importing {len(legacy_sessions)} legacy sessions from {session_dir}")
    for name, path in legacy_sessions:
        try:
            session = loader.load_session(name, path)
        except Exception as e:
            report.record_failure(name, e)
            logger.warning(f"Failed to load legacy session {name}: {e}")
            continue

        try:
            import_legacy_session(store, session)
        except Exception as e:
            report.record_failure(name, e)
            logger.warning(f"Failed to import legacy session {name}: {e}")
            continue

        report.imported += 1
        logger.info(f"Imported legacy session: {name}")

    logger.info(f"Import complete: {report.imported} successful, {report.failed} failed")
    return report
