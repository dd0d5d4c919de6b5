"""Cascade selection.

Undoing an operation also undoes everything recorded after it, and redoing
one also redoes everything undone before it. Given a view ordered so that
the operations that must go first come first, the cascade for a target is
the prefix of that view ending at the target.
"""

from __future__ import annotations

from collections.abc import Sequence

from backstep.core.errors import NotFoundError
from backstep.operations.models import Operation


def plan_cascade(records: Sequence[Operation], target: int | str) -> list[Operation]:
    """Select the cascade ending at ``target``.

    Args:
        records: Candidate operations, in processing order (newest-first
            for undo, newest-undone-first for redo).
        target: Position in ``records`` or an operation id.

    Returns:
        ``records[0..i]`` where ``i`` is the target's position.

    Raises:
        NotFoundError: If the id is unknown or the index is out of range.
    """
    if isinstance(target, int) and not isinstance(target, bool):
        if target < 0 or target >= len(records):
            raise NotFoundError(
                f"Index {target} out of range (0 to {len(records) - 1})"
                if records
                else f"Index {target} out of range: no operations"
            )
        return list(records[: target + 1])

    for index, record in enumerate(records):
        if record.id == target:
            return list(records[: index + 1])

    raise NotFoundError(f"Operation not found: {target}")
