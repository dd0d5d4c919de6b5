"""Persisted undone-state tracking.

The activity log is never edited. Which of its operations are currently
reverted is recorded separately, as a JSON object mapping each log path to
the ids undone in that log, in the order they were undone::

    {
      "/home/me/.claude/projects/-home-me-app/3f2c.jsonl": ["toolu_01", "toolu_02"]
    }

Every read goes to disk, so several trackers (or processes) pointed at the
same file see each other's writes; concurrent writers are last-write-wins.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path

from backstep.core import StorageError, get_logger
from backstep.core.atomic import atomic_write_json
from backstep.operations.models import Operation

logger = get_logger("undo.tracker")


class UndoStateTracker:
    """Track undone operation ids per log.

    Attributes:
        state_file: JSON file holding the undone sets.
    """

    def __init__(self, state_file: Path) -> None:
        """Initialize the tracker.

        Args:
            state_file: Path of the JSON state file. It is created lazily on
                the first write; its directory is created immediately.

        Raises:
            StorageError: If the state directory cannot be created.
        """
        self.state_file = state_file
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create undo-state directory {self.state_file.parent}: {e}"
            ) from e

    def load(self) -> dict[str, list[str]]:
        """Read the whole state file.

        Returns:
            Mapping of log id to undone ids; empty if the file is absent.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """
        try:
            text = self.state_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read undo state {self.state_file}: {e}") from e

        if not text.strip():
            return {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupted undo state {self.state_file}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Undo state root must be an object: {self.state_file}")

        return {
            str(log_id): [str(op_id) for op_id in ids]
            for log_id, ids in data.items()
            if isinstance(ids, list)
        }

    def _save(self, state: dict[str, list[str]]) -> None:
        try:
            atomic_write_json(self.state_file, state)
        except (OSError, UnicodeEncodeError) as e:
            raise StorageError(f"Cannot write undo state {self.state_file}: {e}") from e

    def undone_ids(self, log_id: str) -> list[str]:
        """Ids undone in a log, oldest-undone first."""
        return self.load().get(log_id, [])

    def mark_undone(self, operation_id: str, log_id: str) -> bool:
        """Add an id to a log's undone set.

        Idempotent: an id already present keeps its original position.

        Returns:
            True if the set changed.
        """
        state = self.load()
        ids = state.setdefault(log_id, [])
        if operation_id in ids:
            return False

        ids.append(operation_id)
        self._save(state)
        logger.debug("Marked %s undone in %s", operation_id, log_id)
        return True

    def mark_redone(self, operation_id: str, log_id: str) -> bool:
        """Remove an id from a log's undone set.

        Idempotent: removing an absent id is a no-op.

        Returns:
            True if the set changed.
        """
        state = self.load()
        ids = state.get(log_id)
        if not ids or operation_id not in ids:
            return False

        ids.remove(operation_id)
        if not ids:
            del state[log_id]
        self._save(state)
        logger.debug("Marked %s redone in %s", operation_id, log_id)
        return True

    def is_undone(self, operation_id: str, log_id: str) -> bool:
        return operation_id in self.undone_ids(log_id)

    def filter_active(
        self, operations: Iterable[Operation], log_id: str
    ) -> list[Operation]:
        """Operations not undone, in their original order."""
        undone = set(self.undone_ids(log_id))
        return [op for op in operations if op.id not in undone]

    def undone_view(
        self, operations: Sequence[Operation], log_id: str
    ) -> list[Operation]:
        """Undone operations, most recently undone first.

        Ids in the state that no longer match an operation are ignored.
        Every returned operation has ``undone`` set.
        """
        by_id = {op.id: op for op in operations}
        return [
            by_id[op_id].with_undone(True)
            for op_id in reversed(self.undone_ids(log_id))
            if op_id in by_id
        ]
