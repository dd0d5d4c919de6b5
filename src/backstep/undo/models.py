"""Result models for undo/redo cascades.

- OperationResult: outcome of reversing or reapplying one operation
- CascadeReport: ordered results of a whole cascade with tallies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from backstep.core.errors import OperationError
from backstep.operations.models import Operation


class Direction(str, Enum):
    """Which way a cascade moves."""

    UNDO = "undo"
    REDO = "redo"


@dataclass
class OperationResult:
    """Outcome of one engine step.

    Attributes:
        operation: The operation that was processed.
        success: Whether the filesystem now reflects the requested state.
        message: Human-readable outcome.
        backup_path: Reference to the snapshot taken before mutating, if any.
        error: Error code (``OperationError.code``) on failure.
    """

    operation: Operation
    success: bool
    message: str
    backup_path: str | None = None
    error: str | None = None

    @classmethod
    def ok(
        cls, operation: Operation, message: str, backup_path: str | None = None
    ) -> OperationResult:
        return cls(
            operation=operation,
            success=True,
            message=message,
            backup_path=backup_path,
        )

    @classmethod
    def fail(
        cls,
        operation: Operation,
        error: OperationError,
        backup_path: str | None = None,
    ) -> OperationResult:
        """Create a failed result from a handler error."""
        return cls(
            operation=operation,
            success=False,
            message=str(error),
            backup_path=backup_path,
            error=error.code,
        )


@dataclass
class CascadeReport:
    """Results of processing a cascade, in processing order."""

    direction: Direction
    results: list[OperationResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def all_succeeded(self) -> bool:
        return self.fail_count == 0

    def add(self, result: OperationResult) -> None:
        self.results.append(result)
