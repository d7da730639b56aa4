"""Tests for the one-time legacy session import.

Covers:
- sessions and conversations imported when the database is created
- per-session failures logged and skipped without partial rows
- no import for existing databases
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import pytest

from session_ledger.legacy import LegacySessionLoader
from session_ledger.store.core import SessionStorage
from session_ledger.store.models import Conversation, Message, MessageRole, Session


def _conversation(*texts: str) -> Conversation:
    return Conversation(
        [
            Message(
                MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT,
                [{"type": "text", "text": text}],
                i,
            )
            for i, text in enumerate(texts)
        ]
    )


class FakeLoader:
    """In-memory legacy session source."""

    def __init__(
        self,
        sessions: list[Session],
        broken: set[str] | None = None,
        list_error: Exception | None = None,
    ):
        self.sessions = sessions
        self.broken = broken or set()
        self.list_error = list_error
        self.listed_dirs: list[Path] = []

    def list_sessions(self, session_dir: Path) -> list[tuple[str, Path]]:
        self.listed_dirs.append(session_dir)
        if self.list_error is not None:
            raise self.list_error
        listing = [
            (session.id, session_dir / f"{i}-{session.id}.jsonl")
            for i, session in enumerate(self.sessions)
        ]
        listing += [(name, session_dir / f"{name}.jsonl") for name in sorted(self.broken)]
        return listing

    def load_session(self, name: str, path: Path) -> Session:
        if name in self.broken:
            raise ValueError(f"corrupt line in {path.name}")
        index = int(path.stem.split("-", 1)[0])
        return self.sessions[index]


def _legacy_session(session_id: str, *texts: str, **kwargs: object) -> Session:
    return Session(
        id=session_id,
        working_dir=Path("/legacy/project"),
        description=f"legacy {session_id}",
        conversation=_conversation(*texts),
        **kwargs,  # type: ignore[arg-type]
    )


class TestLegacyImport:
    """Tests for import on database creation."""

    def test_loader_satisfies_protocol(self) -> None:
        """Any object with the two methods is a loader."""
        assert isinstance(FakeLoader([]), LegacySessionLoader)

    def test_imports_sessions_and_conversations(self, db_path: Path) -> None:
        """Rows, timestamps and conversations are copied as-is."""
        loader = FakeLoader(
            [
                _legacy_session(
                    "20230601_1",
                    "hello",
                    "hi there",
                    created_at="2023-06-01 10:00:00.000",
                    updated_at="2023-06-01 11:00:00.000",
                    accumulated_total_tokens=120,
                    extension_data={"todo": {"items": []}},
                ),
                _legacy_session("20230602_1", "second"),
            ]
        )

        storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            assert loader.listed_dirs == [db_path.parent]
            assert storage.import_report is not None
            assert storage.import_report.imported == 2
            assert storage.import_report.failed == 0

            first = storage.get_session("20230601_1", include_messages=True)
            assert first.created_at == "2023-06-01 10:00:00.000"
            assert first.updated_at == "2023-06-01 11:00:00.000"
            assert first.accumulated_total_tokens == 120
            assert first.extension_data == {"todo": {"items": []}}
            assert first.message_count == 2
            assert first.conversation is not None
            assert [m.role for m in first.conversation] == [
                MessageRole.USER,
                MessageRole.ASSISTANT,
            ]

            second = storage.get_session("20230602_1")
            assert second.created_at is not None
            assert second.message_count == 1
        finally:
            storage.close()

    def test_load_failures_are_skipped(
        self, db_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A session that can't be loaded doesn't stop the others."""
        loader = FakeLoader([_legacy_session("20230601_1", "ok")], broken={"20230601_2"})

        with caplog.at_level(logging.INFO, logger="session_ledger"):
            storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            report = storage.import_report
            assert report is not None
            assert report.imported == 1
            assert report.failed == 1
            assert "corrupt line" in report.failures["20230601_2"]
            assert "Import complete: 1 successful, 1 failed" in caplog.text
            assert [s.id for s in storage.list_sessions()] == ["20230601_1"]
        finally:
            storage.close()

    def test_duplicate_id_leaves_no_partial_messages(self, db_path: Path) -> None:
        """A failed session insert rolls back with its messages."""
        loader = FakeLoader(
            [
                _legacy_session("20230601_1", "original"),
                _legacy_session("20230601_1", "duplicate", "extra"),
            ]
        )

        storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            assert storage.import_report is not None
            assert storage.import_report.imported == 1
            assert storage.import_report.failed == 1
            conversation = storage.get_conversation("20230601_1")
            assert [m.content[0]["text"] for m in conversation] == ["original"]
        finally:
            storage.close()

    def test_bad_message_rolls_back_session_row(self, db_path: Path) -> None:
        """A conversation that can't be stored leaves no session row."""
        broken = _legacy_session("20230601_1", "fine")
        assert broken.conversation is not None
        broken.conversation.append(Message(MessageRole.USER, {"bad": object()}, 9))
        loader = FakeLoader([broken, _legacy_session("20230601_2", "ok")])

        storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            assert storage.import_report is not None
            assert storage.import_report.failed == 1
            assert [s.id for s in storage.list_sessions()] == ["20230601_2"]
            assert storage.get_insights().total_sessions == 1
        finally:
            storage.close()

    def test_listing_failure_returns_empty_report(self, db_path: Path) -> None:
        """An unreadable legacy directory is not fatal."""
        loader = FakeLoader([], list_error=OSError("permission denied"))

        storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            assert storage.import_report is not None
            assert storage.import_report.imported == 0
            assert storage.import_report.failed == 0
        finally:
            storage.close()

    def test_imports_into_file_without_tables(self, db_path: Path) -> None:
        """A leftover file with no session tables still gets the import."""
        db_path.parent.mkdir(parents=True)
        conn = sqlite3.connect(str(db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        conn.close()
        loader = FakeLoader([_legacy_session("20230601_1", "recovered")])

        storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            assert storage.import_report is not None
            assert storage.import_report.imported == 1
            assert [s.id for s in storage.list_sessions()] == ["20230601_1"]
        finally:
            storage.close()

    def test_existing_database_is_not_imported_into(self, db_path: Path) -> None:
        """Import only runs when the database file is created."""
        SessionStorage(db_path).close()
        loader = FakeLoader([_legacy_session("20230601_1", "late")])

        storage = SessionStorage(db_path, legacy_loader=loader)
        try:
            assert loader.listed_dirs == []
            assert storage.import_report is None
            assert storage.list_sessions() == []
        finally:
            storage.close()
