"""Tests for UndoStateTracker."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from backstep.core.errors import StorageError
from backstep.operations.models import Operation, ShellCommand
from backstep.undo.tracker import UndoStateTracker

LOG = "/logs/session.jsonl"


def make_ops(count: int) -> list[Operation]:
    return [Operation.create(ShellCommand(command=f"cmd {i}"), op_id=f"op{i}") for i in range(count)]


class TestUndoStateTracker:
    """Tests for persisted undone ids."""

    def test_state_file_created_lazily(self, tracker: UndoStateTracker) -> None:
        """Test nothing is written until the first mark."""
        assert not tracker.state_file.exists()
        assert tracker.load() == {}

        tracker.mark_undone("a", LOG)

        assert json.loads(tracker.state_file.read_text()) == {LOG: ["a"]}

    def test_mark_undone_idempotent(self, tracker: UndoStateTracker) -> None:
        """Test marking twice equals marking once."""
        assert tracker.mark_undone("a", LOG) is True
        once = tracker.load()

        assert tracker.mark_undone("a", LOG) is False
        assert tracker.load() == once

    def test_undone_then_redone_restores(self, tracker: UndoStateTracker) -> None:
        """Test mark_redone reverses mark_undone."""
        tracker.mark_undone("a", LOG)
        before = tracker.undone_ids(LOG)

        tracker.mark_undone("b", LOG)
        tracker.mark_redone("b", LOG)

        assert tracker.undone_ids(LOG) == before

    def test_mark_redone_absent_is_noop(self, tracker: UndoStateTracker) -> None:
        """Test removing an id that is not undone changes nothing."""
        assert tracker.mark_redone("missing", LOG) is False
        assert not tracker.state_file.exists()

    def test_empty_log_entry_removed(self, tracker: UndoStateTracker) -> None:
        """Test a log with no undone ids leaves no key behind."""
        tracker.mark_undone("a", LOG)
        tracker.mark_redone("a", LOG)

        assert tracker.load() == {}

    def test_logs_are_independent(self, tracker: UndoStateTracker) -> None:
        """Test ids are scoped to their log."""
        tracker.mark_undone("a", LOG)

        assert tracker.is_undone("a", LOG) is True
        assert tracker.is_undone("a", "/logs/other.jsonl") is False

    def test_state_survives_new_tracker(self, tracker: UndoStateTracker) -> None:
        """Test state is shared through the file."""
        tracker.mark_undone("a", LOG)

        other = UndoStateTracker(tracker.state_file)

        assert other.is_undone("a", LOG) is True

    def test_corrupted_state_raises(self, tracker: UndoStateTracker) -> None:
        """Test an unparsable state file is a storage error."""
        tracker.state_file.write_text("{oops")

        with pytest.raises(StorageError, match="Corrupted"):
            tracker.load()

    def test_non_object_state_raises(self, tracker: UndoStateTracker) -> None:
        """Test a state file that is not an object is rejected."""
        tracker.state_file.write_text("[]")

        with pytest.raises(StorageError):
            tracker.load()

    def test_uncreatable_directory(self, tmp_path: Path) -> None:
        """Test an impossible state location fails at construction."""
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(StorageError):
            UndoStateTracker(blocker / "sub" / "state.json")


class TestViews:
    """Tests for filter_active and undone_view."""

    def test_filter_active_keeps_order(self, tracker: UndoStateTracker) -> None:
        """Test active operations keep their log order."""
        ops = make_ops(4)
        tracker.mark_undone("op1", LOG)

        assert [op.id for op in tracker.filter_active(ops, LOG)] == ["op0", "op2", "op3"]

    def test_undone_view_most_recent_first(self, tracker: UndoStateTracker) -> None:
        """Test the undone view lists the last undone first."""
        ops = make_ops(4)
        for op_id in ("op3", "op2", "op1"):
            tracker.mark_undone(op_id, LOG)

        view = tracker.undone_view(ops, LOG)

        assert [op.id for op in view] == ["op1", "op2", "op3"]
        assert all(op.undone for op in view)

    def test_undone_view_ignores_stale_ids(self, tracker: UndoStateTracker) -> None:
        """Test ids with no matching operation are skipped."""
        tracker.mark_undone("ghost", LOG)

        assert tracker.undone_view(make_ops(2), LOG) == []

    @pytest.mark.parametrize("undone", [set(), {"op0"}, {"op1", "op3"}, {"op0", "op1", "op2", "op3"}])
    def test_views_partition(self, tracker: UndoStateTracker, undone: set[str]) -> None:
        """Test active and undone together cover every id exactly once."""
        ops = make_ops(4)
        for op_id in sorted(undone):
            tracker.mark_undone(op_id, LOG)

        active_ids = [op.id for op in tracker.filter_active(ops, LOG)]
        undone_ids = [op.id for op in tracker.undone_view(ops, LOG)]

        assert sorted(active_ids + undone_ids) == sorted(op.id for op in ops)
        assert not set(active_ids) & set(undone_ids)
