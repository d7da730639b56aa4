"""Tests for tool statistics.

Covers:
- get_tool_stats(): status counts, average duration, per-tool and
  per-operation counts, file-operation timeline
"""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from session_ledger.store.core import SessionStorage
from session_ledger.store.models import FileOperation, ToolEventStatus

PROJECT_DIR = Path("/test/project")


@pytest.fixture()
def session_id(store: SessionStorage) -> str:
    """ID of an empty session."""
    return store.create_session(PROJECT_DIR, "stats").id


def _complete_with_duration(
    store: SessionStorage,
    event_id: int,
    status: ToolEventStatus,
    duration_ms: int,
) -> None:
    """Complete an event, then pin its duration for deterministic averages."""
    store.record_tool_complete(event_id, status)
    store._get_connection().execute(
        "UPDATE tool_events SET duration_ms = ? WHERE id = ?", (duration_ms, event_id)
    )


def _set_started_at(store: SessionStorage, event_id: int, value: str) -> None:
    store._get_connection().execute(
        "UPDATE tool_events SET started_at = ? WHERE id = ?", (value, event_id)
    )


class TestGetToolStats:
    """Tests for get_tool_stats()."""

    def test_empty_session(self, store: SessionStorage, session_id: str) -> None:
        """No events, all zeros."""
        stats = store.get_tool_stats(session_id)

        assert stats.total_calls == 0
        assert stats.successful_calls == 0
        assert stats.failed_calls == 0
        assert stats.cancelled_calls == 0
        assert stats.avg_duration_ms == 0.0
        assert stats.success_rate == 0.0
        assert stats.calls_by_tool == {}
        assert stats.calls_by_operation == {}
        assert stats.file_operations == []

    def test_counts_by_status(self, store: SessionStorage, session_id: str) -> None:
        """Each terminal status is counted; running events only count toward the total."""
        statuses = [
            ToolEventStatus.SUCCESS,
            ToolEventStatus.SUCCESS,
            ToolEventStatus.SUCCESS,
            ToolEventStatus.ERROR,
            ToolEventStatus.CANCELLED,
        ]
        for status in statuses:
            event_id = store.record_tool_start(session_id, "shell")
            store.record_tool_complete(event_id, status)
        store.record_tool_start(session_id, "shell")

        stats = store.get_tool_stats(session_id)

        assert stats.total_calls == 6
        assert stats.successful_calls == 3
        assert stats.failed_calls == 1
        assert stats.cancelled_calls == 1
        assert stats.success_rate == pytest.approx(0.5)

    def test_average_ignores_running_events(self, store: SessionStorage, session_id: str) -> None:
        """Only events with a duration contribute to the average."""
        for duration in (100, 300):
            event_id = store.record_tool_start(session_id, "shell")
            _complete_with_duration(store, event_id, ToolEventStatus.SUCCESS, duration)
        store.record_tool_start(session_id, "shell")

        assert store.get_tool_stats(session_id).avg_duration_ms == pytest.approx(200.0)

    def test_average_is_zero_without_terminal_events(
        self, store: SessionStorage, session_id: str
    ) -> None:
        """Running events alone leave the average at zero."""
        store.record_tool_start(session_id, "shell")
        store.record_tool_start(session_id, "read_file")

        assert store.get_tool_stats(session_id).avg_duration_ms == 0.0

    def test_average_matches_mean_for_random_durations(
        self, store: SessionStorage, session_id: str
    ) -> None:
        """The average equals the arithmetic mean over completed events."""
        rng = random.Random(1234)
        durations = []
        for _ in range(25):
            event_id = store.record_tool_start(session_id, "tool")
            if rng.random() < 0.3:
                continue
            duration = rng.randint(0, 10_000)
            durations.append(duration)
            status = rng.choice(
                [ToolEventStatus.SUCCESS, ToolEventStatus.ERROR, ToolEventStatus.CANCELLED]
            )
            _complete_with_duration(store, event_id, status, duration)

        expected = sum(durations) / len(durations) if durations else 0.0
        assert store.get_tool_stats(session_id).avg_duration_ms == pytest.approx(expected)

    def test_calls_by_tool_and_operation(self, store: SessionStorage, session_id: str) -> None:
        """Tool names are always counted; operation types only when set."""
        store.record_tool_start(session_id, "developer__shell", "command_execute")
        store.record_tool_start(session_id, "developer__shell", "command_execute")
        store.record_tool_start(session_id, "developer__text_editor", "file_edit", "/a.py")
        store.record_tool_start(session_id, "legacy_tool")

        stats = store.get_tool_stats(session_id)

        assert stats.calls_by_tool == {
            "developer__shell": 2,
            "developer__text_editor": 1,
            "legacy_tool": 1,
        }
        assert stats.calls_by_operation == {"command_execute": 2, "file_edit": 1}

    def test_file_operations_in_chronological_order(
        self, store: SessionStorage, session_id: str
    ) -> None:
        """Events with both a file path and an operation form the timeline."""
        later = store.record_tool_start(session_id, "text_editor", "file_edit", "/b.py")
        earlier = store.record_tool_start(session_id, "text_editor", "file_create", "/a.py")
        store.record_tool_start(session_id, "text_editor", None, "/no-op.py")
        store.record_tool_start(session_id, "shell", "command_execute")
        _set_started_at(store, later, "2024-05-01 12:00:01.000")
        _set_started_at(store, earlier, "2024-05-01 12:00:00.000")

        stats = store.get_tool_stats(session_id)

        assert stats.file_operations == [
            FileOperation("/a.py", "file_create", "2024-05-01 12:00:00.000"),
            FileOperation("/b.py", "file_edit", "2024-05-01 12:00:01.000"),
        ]

    def test_scoped_to_session(self, store: SessionStorage, session_id: str) -> None:
        """Other sessions' events are not included."""
        other = store.create_session(PROJECT_DIR, "other").id
        store.record_tool_start(other, "shell", "command_execute")

        assert store.get_tool_stats(session_id).total_calls == 0
        assert store.get_tool_stats(other).total_calls == 1

    def test_to_dict(self, store: SessionStorage, session_id: str) -> None:
        """to_dict() exposes every aggregate as plain data."""
        event_id = store.record_tool_start(session_id, "text_editor", "file_read", "/a.py")
        _complete_with_duration(store, event_id, ToolEventStatus.SUCCESS, 50)

        data = store.get_tool_stats(session_id).to_dict()

        assert data["total_calls"] == 1
        assert data["successful_calls"] == 1
        assert data["avg_duration_ms"] == 50.0
        assert data["success_rate"] == 1.0
        assert data["calls_by_tool"] == {"text_editor": 1}
        assert data["calls_by_operation"] == {"file_read": 1}
        assert data["file_operations"][0]["file_path"] == "/a.py"
        assert data["file_operations"][0]["operation"] == "file_read"
