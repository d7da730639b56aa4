"""Process-wide SessionStorage handle.

Long-running processes call ``get_storage()`` once at startup and pass the
returned instance to whatever needs it. Initialization (schema creation or
migration, legacy import) happens exactly once, under a lock; every later
call returns the same instance.
"""

import logging
import threading

from session_ledger.config import StoreConfig, ensure_session_dir, load_config
from session_ledger.legacy import LegacySessionLoader
from session_ledger.store.core import SessionStorage

logger = logging.getLogger(__name__)

_storage: SessionStorage | None = None
_storage_lock = threading.Lock()


def get_storage(
    config: StoreConfig | None = None,
    legacy_loader: LegacySessionLoader | None = None,
) -> SessionStorage:
    """Get or create the storage singleton.

    The singleton is lazily initialized on first access. Arguments are only
    used by the call that initializes it; to open a different database,
    construct a SessionStorage directly.

    Args:
        config: Store configuration (only used on first call). Defaults to
            ``load_config()``.
        legacy_loader: Legacy session source (only used on first call).

    Returns:
        SessionStorage instance.
    """
    global _storage
    if _storage is None:
        with _storage_lock:
            if _storage is None:
                config = config or load_config()
                ensure_session_dir(config)
                _storage = SessionStorage(
                    config.db_path,
                    busy_timeout=config.busy_timeout_seconds,
                    legacy_loader=legacy_loader,
                )
                logger.debug(f"Storage handle initialized: {config.db_path}")
    return _storage


def reset_storage() -> None:
    """Close and forget the storage singleton.

    Useful for testing or at process shutdown.
    """
    global _storage
    with _storage_lock:
        if _storage is not None:
            _storage.close()
            _storage = None
