"""Operation sources.

A source supplies the active and undone views of one operation history
and records state changes made by undo and redo:

- LogOperationSource: an immutable session log plus an UndoStateTracker
- LocalSessionSource: a hook-recorded local session with inline flags
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from backstep.log.parser import SessionLogParser
from backstep.operations.models import Operation
from backstep.sessions.storage import LocalSessionStorage
from backstep.undo.tracker import UndoStateTracker


class OperationSource(ABC):
    """History of operations with undone state."""

    @property
    @abstractmethod
    def log_id(self) -> str:
        """Identity of the history, used as the undone-state key."""
        ...

    @abstractmethod
    def list_active(self) -> list[Operation]:
        """Operations not undone, newest first."""
        ...

    @abstractmethod
    def list_undone(self) -> list[Operation]:
        """Undone operations, most recently undone first."""
        ...

    @abstractmethod
    def mark_undone(self, operation_id: str) -> bool:
        ...

    @abstractmethod
    def mark_redone(self, operation_id: str) -> bool:
        ...


class LogOperationSource(OperationSource):
    """Operations from a session log.

    The log is re-read on every call and never written.
    """

    def __init__(
        self,
        log_path: Path,
        tracker: UndoStateTracker,
        parser: SessionLogParser | None = None,
    ) -> None:
        self.log_path = log_path
        self.tracker = tracker
        self.parser = parser or SessionLogParser(tracker)

    @property
    def log_id(self) -> str:
        return self.parser.log_id(self.log_path)

    def list_active(self) -> list[Operation]:
        operations = self.parser.parse(self.log_path)
        return list(reversed(self.tracker.filter_active(operations, self.log_id)))

    def list_undone(self) -> list[Operation]:
        return self.tracker.undone_view(self.parser.parse(self.log_path), self.log_id)

    def list_all(self) -> list[Operation]:
        """Every operation with its undone flag set, newest first."""
        undone = set(self.tracker.undone_ids(self.log_id))
        return [
            op.with_undone(op.id in undone)
            for op in reversed(self.parser.parse(self.log_path))
        ]

    def mark_undone(self, operation_id: str) -> bool:
        return self.tracker.mark_undone(operation_id, self.log_id)

    def mark_redone(self, operation_id: str) -> bool:
        return self.tracker.mark_redone(operation_id, self.log_id)


class LocalSessionSource(OperationSource):
    """Operations from a local session with the undone flag stored inline.

    Without an undo order on disk, the undone view is in recording order:
    undo always takes a newest-first suffix, so its oldest member is the
    one undone last.
    """

    def __init__(self, storage: LocalSessionStorage, session_id: str) -> None:
        self.storage = storage
        self.session_id = session_id

    @property
    def log_id(self) -> str:
        return str(self.storage.get_path(self.session_id))

    def list_active(self) -> list[Operation]:
        return list(reversed(self.storage.load_or_create(self.session_id).active()))

    def list_undone(self) -> list[Operation]:
        return self.storage.load_or_create(self.session_id).undone()

    def list_all(self) -> list[Operation]:
        return list(reversed(self.storage.load_or_create(self.session_id).operations))

    def _set_undone(self, operation_id: str, undone: bool) -> bool:
        session = self.storage.load_or_create(self.session_id)
        changed = session.set_undone(operation_id, undone)
        if changed:
            self.storage.save(session)
        return changed

    def mark_undone(self, operation_id: str) -> bool:
        return self._set_undone(operation_id, True)

    def mark_redone(self, operation_id: str) -> bool:
        return self._set_undone(operation_id, False)
