"""Pytest configuration and fixtures for session-ledger tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from session_ledger.store.core import SessionStorage
from session_ledger.store.handle import reset_storage


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Path of a not-yet-created database inside a temp session directory."""
    return tmp_path / "sessions" / "sessions.db"


@pytest.fixture()
def store(db_path: Path) -> Iterator[SessionStorage]:
    """Create a SessionStorage with a real temp SQLite database."""
    storage = SessionStorage(db_path)
    yield storage
    storage.close()


@pytest.fixture(autouse=True)
def _reset_storage_singleton() -> Iterator[None]:
    """Make sure no test leaks the process-wide storage handle."""
    yield
    reset_storage()

