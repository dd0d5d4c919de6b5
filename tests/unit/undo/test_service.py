"""Tests for UndoService over log and local session sources."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from backstep.operations.models import (
    FileCreate,
    FileDelete,
    FileEdit,
    Operation,
    OperationKind,
    ShellCommand,
)
from backstep.sessions.models import LocalSession
from backstep.sessions.storage import LocalSessionStorage
from backstep.undo.backups import BackupKey, BackupPurpose, FileBackupStore
from backstep.undo.manager import UndoService
from backstep.undo.sources import LocalSessionSource, LogOperationSource
from backstep.undo.tracker import UndoStateTracker

if TYPE_CHECKING:
    from collections.abc import Callable

    from conftest import LogBuilder

    ServiceFactory = Callable[[LogBuilder], UndoService]


@pytest.fixture
def make_service(tracker: UndoStateTracker, backups: FileBackupStore) -> ServiceFactory:
    def build(log: LogBuilder) -> UndoService:
        return UndoService(LogOperationSource(log.path, tracker), backups)

    return build


class TestScenarios:
    """End-to-end undo/redo scenarios over a session log."""

    def test_write_undo_deletes_and_backs_up(
        self,
        session_log: LogBuilder,
        workspace: Path,
        backups: FileBackupStore,
        make_service: ServiceFactory,
    ) -> None:
        """Test undoing a Write deletes the file and keeps its content."""
        target = workspace / "a.txt"
        target.write_text("hello")
        session_log.write(target, "hello", tool_id="w1")
        service = make_service(session_log)

        active = service.list_active()
        assert len(active) == 1
        assert active[0].kind is OperationKind.FILE_CREATE

        report = service.undo(service.plan_cascade(active, 0))

        assert report.success_count == 1
        assert not target.exists()
        assert backups.get(BackupKey("w1", BackupPurpose.DELETED)) == b"hello"

    def test_edit_undo_then_redo(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test an edit foo->bar is undone to foo and redone to bar."""
        target = workspace / "b.txt"
        target.write_text("bar")
        session_log.edit(target, "foo", "bar", tool_id="e1")
        service = make_service(session_log)

        service.undo(service.plan_cascade(service.list_active(), "e1"))
        assert target.read_text() == "foo"

        report = service.redo(service.plan_cascade(service.list_undone(), "e1"))

        assert report.all_succeeded
        assert target.read_text() == "bar"

    def test_cascade_undone_newest_first(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test selecting the oldest of three undoes all three newest-first."""
        target = workspace / "c.txt"
        session_log.write(target, "v1", tool_id="create")
        session_log.edit(target, "v1", "v2", tool_id="edit")
        session_log.bash(f"rm {target}", tool_id="delete")
        service = make_service(session_log)
        # The delete was detected from a shell command, so its content was
        # never captured; a restore needs a redo backup.
        processed: list[str] = []

        cascade = service.plan_cascade(service.list_active(), "create")
        report = service.undo(cascade, on_result=lambda r: processed.append(r.operation.id))

        assert [op.id for op in cascade] == ["delete", "edit", "create"]
        assert processed == ["delete", "edit", "create"]
        assert [r.success for r in report.results] == [False, False, False]

    def test_cascade_full_round_trip(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test a create/edit history can be stepped back and forward again."""
        target = workspace / "c.txt"
        target.write_text("v2")
        session_log.write(target, "v1", tool_id="create")
        session_log.edit(target, "v1", "v2", tool_id="edit")
        service = make_service(session_log)

        undo_report = service.undo(service.plan_cascade(service.list_active(), "create"))
        assert undo_report.all_succeeded
        assert not target.exists()

        redo_cascade = service.plan_cascade(service.list_undone(), "edit")
        redo_report = service.redo(redo_cascade)

        assert [op.id for op in redo_cascade] == ["create", "edit"]
        assert redo_report.all_succeeded
        assert target.read_text() == "v2"
        assert [op.id for op in service.list_active()] == ["edit", "create"]

    def test_shell_command_is_manual(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test undoing git commit fails with a manual message and no mutation."""
        (workspace / "tracked.txt").write_text("x")
        session_log.bash("git commit -m x", tool_id="b1")
        service = make_service(session_log)
        before = sorted(os.listdir(workspace))

        active = service.list_active()
        report = service.undo(service.plan_cascade(active, 0))

        assert active[0].payload == ShellCommand("git commit -m x")
        assert report.results[0].success is False
        assert "manually" in report.results[0].message
        assert sorted(os.listdir(workspace)) == before
        assert [op.id for op in service.list_active()] == ["b1"]


class TestStateUpdates:
    """Tests for undone-state bookkeeping."""

    def test_only_successes_marked(
        self,
        session_log: LogBuilder,
        workspace: Path,
        tracker: UndoStateTracker,
        make_service: ServiceFactory,
    ) -> None:
        """Test failed steps stay active."""
        target = workspace / "a.txt"
        target.write_text("a")
        session_log.write(target, "a", tool_id="w1")
        session_log.bash("make", tool_id="b1")
        service = make_service(session_log)

        service.undo(service.plan_cascade(service.list_active(), "w1"))

        assert [op.id for op in service.list_active()] == ["b1"]
        assert [op.id for op in service.list_undone()] == ["w1"]
        assert tracker.undone_ids(str(session_log.path)) == ["w1"]

    def test_redo_restores_causal_order(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test redo of a cascade replays oldest first."""
        a, b = workspace / "a.txt", workspace / "b.txt"
        a.write_text("A")
        b.write_text("B")
        session_log.write(a, "A", tool_id="w1")
        session_log.write(b, "B", tool_id="w2")
        service = make_service(session_log)
        service.undo(service.plan_cascade(service.list_active(), "w1"))

        undone = service.list_undone()
        cascade = service.plan_cascade(undone, "w2")
        report = service.redo(cascade)

        assert [op.id for op in undone] == ["w1", "w2"]
        assert [r.operation.id for r in report.results] == ["w1", "w2"]
        assert a.read_text() == "A"
        assert b.read_text() == "B"
        assert service.list_undone() == []
        assert [op.id for op in service.list_active()] == ["w2", "w1"]

    def test_repeat_undo_is_idempotent(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test an undone operation disappears from the active view."""
        target = workspace / "a.txt"
        target.write_text("a")
        session_log.write(target, "a", tool_id="w1")
        service = make_service(session_log)

        service.undo(service.plan_cascade(service.list_active(), 0))

        assert service.list_active() == []

    def test_later_appends_not_in_running_cascade(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test a cascade only contains what was parsed when it was planned."""
        target = workspace / "a.txt"
        target.write_text("a")
        session_log.write(target, "a", tool_id="w1")
        service = make_service(session_log)
        cascade = service.plan_cascade(service.list_active(), 0)

        session_log.bash("make", tool_id="late")
        report = service.undo(cascade)

        assert [r.operation.id for r in report.results] == ["w1"]
        assert [op.id for op in service.list_active()] == ["late"]

    def test_preview_does_not_mutate(
        self, session_log: LogBuilder, workspace: Path, make_service: ServiceFactory
    ) -> None:
        """Test previews leave the filesystem alone."""
        target = workspace / "a.txt"
        target.write_text("a")
        session_log.write(target, "a", tool_id="w1")
        service = make_service(session_log)

        previews = service.preview(service.list_active())

        assert previews[0][1].action == "delete"
        assert target.exists()


class TestLocalSessionSource:
    """Tests for undo over a local session with inline flags."""

    @pytest.fixture
    def local_service(
        self,
        session_storage: LocalSessionStorage,
        backups: FileBackupStore,
        workspace: Path,
    ) -> UndoService:
        session = LocalSession(session_id="s1")
        session.add(
            Operation.create(FileCreate(str(workspace / "a.txt"), "A"), op_id="w1")
        )
        session.add(
            Operation.create(
                FileEdit(str(workspace / "a.txt"), "A", "B", original_content="A"),
                op_id="e1",
            )
        )
        session.add(
            Operation.create(FileDelete(str(workspace / "gone.txt"), "kept"), op_id="d1")
        )
        session_storage.save(session)
        (workspace / "a.txt").write_text("B")
        return UndoService(LocalSessionSource(session_storage, "s1"), backups)

    def test_undo_persists_inline(
        self,
        local_service: UndoService,
        session_storage: LocalSessionStorage,
        workspace: Path,
    ) -> None:
        """Test undone flags are written into the session file."""
        report = local_service.undo(local_service.plan_cascade(local_service.list_active(), "e1"))

        assert report.all_succeeded
        assert (workspace / "gone.txt").read_text() == "kept"
        assert (workspace / "a.txt").read_text() == "A"
        stored = session_storage.load("s1")
        assert [op.undone for op in stored.operations] == [False, True, True]

    def test_redo_from_local_session(
        self, local_service: UndoService, workspace: Path
    ) -> None:
        """Test the undone view of a local session redoes in recording order."""
        local_service.undo(local_service.plan_cascade(local_service.list_active(), "d1"))

        undone = local_service.list_undone()
        report = local_service.redo(local_service.plan_cascade(undone, "d1"))

        assert [op.id for op in undone] == ["d1"]
        assert report.all_succeeded
        assert not (workspace / "gone.txt").exists()
        assert local_service.list_undone() == []
