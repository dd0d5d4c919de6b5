"""Local session model.

A local session is the hook recorder's own log: a list of operations with
the undone flag stored inline, persisted as::

    {"sessionId": "2025-01-01T10-00-00-000000", "operations": [...]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from backstep.operations.models import Operation


def new_session_id() -> str:
    """Timestamp-based session id safe for file names."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


@dataclass
class LocalSession:
    """Operations recorded by the hook into one session.

    Attributes:
        session_id: Identifier, also the file stem.
        operations: Recorded operations, oldest first.
    """

    session_id: str = field(default_factory=new_session_id)
    operations: list[Operation] = field(default_factory=list)

    def add(self, operation: Operation) -> None:
        self.operations.append(operation)

    def get(self, operation_id: str) -> Operation | None:
        for operation in self.operations:
            if operation.id == operation_id:
                return operation
        return None

    def set_undone(self, operation_id: str, undone: bool) -> bool:
        """Set the inline undone flag.

        Returns:
            True if the flag changed.
        """
        for index, operation in enumerate(self.operations):
            if operation.id == operation_id:
                if operation.undone == undone:
                    return False
                self.operations[index] = operation.with_undone(undone)
                return True
        return False

    def active(self) -> list[Operation]:
        return [op for op in self.operations if not op.undone]

    def undone(self) -> list[Operation]:
        return [op for op in self.operations if op.undone]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "operations": [op.to_dict() for op in self.operations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocalSession:
        """Deserialize a session.

        Raises:
            ValueError: If an operation record is malformed.
        """
        return cls(
            session_id=str(data["sessionId"]),
            operations=[Operation.from_dict(op) for op in data.get("operations") or []],
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> LocalSession:
        return cls.from_dict(json.loads(text))
