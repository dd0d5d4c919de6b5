"""Undo service.

This module provides the UndoService class, the entry point used by the
CLI: it lists the views of an operation source, plans cascades, runs them
through the engines and keeps the source's undone state in step.

Example:
    from backstep.undo.manager import UndoService

    service = UndoService(source, FileBackupStore(backup_dir))
    active = service.list_active()
    report = service.undo(service.plan_cascade(active, 2))
    print(f"{report.success_count} undone, {report.fail_count} failed")
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from backstep.core import get_logger
from backstep.operations.models import Operation
from backstep.undo.backups import BackupStore
from backstep.undo.cascade import plan_cascade
from backstep.undo.engine import ApplyForwardEngine, ReversalEngine
from backstep.undo.handlers import HandlerRegistry, default_registry
from backstep.undo.models import CascadeReport, OperationResult
from backstep.undo.preview import OperationPreview, Preview
from backstep.undo.sources import OperationSource

logger = get_logger("undo.manager")


class UndoService:
    """Coordinates views, cascades, engines and undone state.

    Attributes:
        source: Operation history being worked on.
        backups: Snapshot store shared by both engines.
    """

    def __init__(
        self,
        source: OperationSource,
        backups: BackupStore,
        registry: HandlerRegistry | None = None,
        preview_lines: int = 5,
    ) -> None:
        """Initialize the service.

        Args:
            source: Operation history.
            backups: Snapshot store.
            registry: Per-kind handlers; the built-in ones if None.
            preview_lines: Lines of file content shown in previews.
        """
        self.source = source
        self.backups = backups
        registry = registry or default_registry()
        self._reversal = ReversalEngine(backups, registry)
        self._forward = ApplyForwardEngine(backups, registry)
        self._preview = OperationPreview(max_lines=preview_lines)

    def list_active(self) -> list[Operation]:
        """Operations that can be undone, newest first."""
        return self.source.list_active()

    def list_undone(self) -> list[Operation]:
        """Operations that can be redone, most recently undone first."""
        return self.source.list_undone()

    @staticmethod
    def plan_cascade(records: Sequence[Operation], target: int | str) -> list[Operation]:
        """Select the cascade ending at ``target``.

        Raises:
            NotFoundError: If the target is not in ``records``.
        """
        return plan_cascade(records, target)

    def undo(
        self,
        cascade: Sequence[Operation],
        on_result: Callable[[OperationResult], None] | None = None,
    ) -> CascadeReport:
        """Reverse a cascade newest-first.

        Each operation that is reversed successfully is marked undone as
        soon as its step completes.

        Args:
            cascade: Operations from ``plan_cascade`` over the active view.
            on_result: Called with each result as soon as it is known.

        Returns:
            Per-operation results with tallies.
        """

        def record(result: OperationResult) -> None:
            if result.success:
                self.source.mark_undone(result.operation.id)
            if on_result is not None:
                on_result(result)

        logger.info("Undoing %d operations in %s", len(cascade), self.source.log_id)
        return self._reversal.run(cascade, on_result=record)

    def redo(
        self,
        cascade: Sequence[Operation],
        on_result: Callable[[OperationResult], None] | None = None,
    ) -> CascadeReport:
        """Reapply a cascade in causal order.

        Each operation that is reapplied successfully is marked redone as
        soon as its step completes.

        Args:
            cascade: Operations from ``plan_cascade`` over the undone view.
            on_result: Called with each result as soon as it is known.

        Returns:
            Per-operation results with tallies.
        """

        def record(result: OperationResult) -> None:
            if result.success:
                self.source.mark_redone(result.operation.id)
            if on_result is not None:
                on_result(result)

        logger.info("Redoing %d operations in %s", len(cascade), self.source.log_id)
        return self._forward.run(cascade, on_result=record)

    def preview(self, cascade: Sequence[Operation]) -> list[tuple[Operation, Preview]]:
        """Describe what undoing a cascade would do, without mutating."""
        return [(op, self._preview.generate(op)) for op in cascade]
