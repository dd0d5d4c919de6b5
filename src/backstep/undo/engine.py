"""Cascade engines.

Both engines walk a cascade one operation at a time, dispatching each to
its per-kind handler and collecting an ``OperationResult`` for every step.
A failed step never stops the cascade and nothing is rolled back; the
report says what happened to each operation.

Example:
    from backstep.undo.backups import MemoryBackupStore
    from backstep.undo.engine import ReversalEngine

    engine = ReversalEngine(MemoryBackupStore())
    report = engine.run(cascade)
    print(report.success_count, report.fail_count)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from backstep.core import get_logger
from backstep.core.errors import OperationError, OperationIOError
from backstep.operations.models import Operation
from backstep.undo.backups import BackupStore
from backstep.undo.handlers import Handler, HandlerRegistry, default_registry
from backstep.undo.models import CascadeReport, Direction, OperationResult

logger = get_logger("undo.engine")

ResultCallback = Callable[[OperationResult], None]


class _CascadeEngine(ABC):
    """Shared step loop for the undo and redo engines."""

    direction: Direction

    def __init__(
        self,
        backups: BackupStore,
        registry: HandlerRegistry | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            backups: Store for pre-mutation snapshots.
            registry: Handler registry; the built-in handlers if None.
        """
        self.backups = backups
        self.registry = registry or default_registry()

    @abstractmethod
    def _handler_for(self, operation: Operation) -> Handler:
        """Pick the handler that moves ``operation`` in this engine's direction."""

    def apply(self, operation: Operation) -> OperationResult:
        """Process a single operation.

        Returns:
            The step result. Handler errors are folded into a failed result.
        """
        try:
            handler = self._handler_for(operation)
            outcome = handler(operation, self.backups)
        except OperationError as e:
            logger.debug(
                "%s of %s (%s) failed: %s",
                self.direction.value,
                operation.id,
                operation.kind.value,
                e,
            )
            return OperationResult.fail(operation, e)
        except OSError as e:
            logger.warning("Unexpected I/O error on %s: %s", operation.id, e)
            return OperationResult.fail(
                operation, OperationIOError(f"I/O error: {e.strerror or e}", cause=e)
            )

        return OperationResult.ok(operation, outcome.message, outcome.backup_path)

    def run(
        self,
        cascade: Iterable[Operation],
        on_result: ResultCallback | None = None,
    ) -> CascadeReport:
        """Process a cascade in the order given.

        Args:
            cascade: Operations to process.
            on_result: Called with each result as soon as it is known.

        Returns:
            Report with one result per operation, in processing order.
        """
        report = CascadeReport(direction=self.direction)
        for operation in cascade:
            result = self.apply(operation)
            report.add(result)
            if on_result is not None:
                on_result(result)

        logger.info(
            "%s cascade finished: %d succeeded, %d failed",
            self.direction.value,
            report.success_count,
            report.fail_count,
        )
        return report


class ReversalEngine(_CascadeEngine):
    """Undo engine. Expects the cascade newest-first."""

    direction = Direction.UNDO

    def _handler_for(self, operation: Operation) -> Handler:
        return self.registry.get(operation.kind).reverse


class ApplyForwardEngine(_CascadeEngine):
    """Redo engine. Expects the cascade in causal (oldest-first) order."""

    direction = Direction.REDO

    def _handler_for(self, operation: Operation) -> Handler:
        return self.registry.get(operation.kind).forward
