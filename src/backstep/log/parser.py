"""Activity log parsing.

A session log is newline-delimited JSON appended to by the recording tool.
Each assistant entry may carry one or more ``tool_use`` items; every
recognised tool call becomes exactly one Operation, in encounter order::

    {"type": "assistant", "timestamp": "2025-01-01T10:00:00Z", "cwd": "/app",
     "message": {"content": [{"type": "tool_use", "id": "toolu_01",
                              "name": "Write",
                              "input": {"file_path": "/app/a.txt", "content": "hi"}}]}}

The log is never modified. Which operations are currently undone comes
from an ``UndoStateTracker``.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

from backstep.core import get_logger
from backstep.core.errors import LogReadError, ParseError
from backstep.operations.bash_detector import BashCommandClassifier
from backstep.operations.models import (
    FileCreate,
    FileEdit,
    Operation,
    Payload,
    SubEdit,
    has_text_fields,
)

if TYPE_CHECKING:
    from backstep.undo.tracker import UndoStateTracker

logger = get_logger("log.parser")


class SessionLogParser:
    """Extract operations from a session log.

    Attributes:
        tracker: Undone-state tracker used for the active and undone views.
        classifier: Shell command classifier for Bash calls.
    """

    def __init__(
        self,
        tracker: UndoStateTracker | None = None,
        classifier: type[BashCommandClassifier] = BashCommandClassifier,
    ) -> None:
        self.tracker = tracker
        self.classifier = classifier

    @staticmethod
    def log_id(path: Path) -> str:
        """Key under which a log's undone state is stored."""
        return str(path)

    def iter_operations(self, path: Path) -> Iterator[Operation]:
        """Stream operations from a log.

        Args:
            path: Log file to read.

        Yields:
            Operations in log order, each id once.

        Raises:
            LogReadError: If the log cannot be opened.
        """
        try:
            handle = path.open(encoding="utf-8", errors="replace")
        except OSError as e:
            raise LogReadError(f"Cannot open session log {path}: {e}") from e

        seen: set[str] = set()
        with handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    operations = self.parse_line(line, line_number)
                except ParseError as e:
                    logger.debug("Skipping %s:%s: %s", path, e.line_number, e)
                    continue
                for operation in operations:
                    # A replayed entry repeats its tool call ids
                    if operation.id in seen:
                        logger.debug("Skipping duplicate operation %s", operation.id)
                        continue
                    seen.add(operation.id)
                    yield operation

    def parse_line(self, line: str, line_number: int | None = None) -> list[Operation]:
        """Extract the operations recorded on one log line.

        Raises:
            ParseError: If the line is not valid JSON.
        """
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e.msg}", line_number) from e

        if not isinstance(entry, dict) or entry.get("type") != "assistant":
            return []

        message = entry.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list):
            return []

        operations = []
        for index, item in enumerate(content):
            if not isinstance(item, dict) or item.get("type") != "tool_use":
                continue
            fallback_id = f"line{line_number}-{index}" if line_number is not None else None
            operation = self.extract(item, entry, fallback_id)
            if operation is not None:
                operations.append(operation)
        return operations

    def extract(
        self,
        tool_use: dict[str, Any],
        entry: dict[str, Any],
        fallback_id: str | None = None,
    ) -> Operation | None:
        """Map a single tool call to an operation.

        Undone state is keyed by operation id, so the id must be the same on
        every parse of the log. A call without an ``id`` takes ``fallback_id``
        (derived from its position in the log) and is skipped without one.

        Args:
            tool_use: The ``tool_use`` content item.
            entry: The log entry holding it (timestamp and working directory).
            fallback_id: Id to use when the call carries none.

        Returns:
            The operation, or None for tools that are not tracked.
        """
        tool_input = tool_use.get("input")
        if not isinstance(tool_input, dict):
            return None

        op_id = tool_use.get("id")
        if not isinstance(op_id, str) or not op_id:
            if fallback_id is None:
                logger.debug("Skipping %s call without an id", tool_use.get("name"))
                return None
            op_id = fallback_id

        payload = self._payload_for(tool_use.get("name"), tool_input, entry.get("cwd"))
        if payload is None:
            return None

        try:
            return Operation.create(payload, op_id=op_id, timestamp=entry.get("timestamp"))
        except ValueError:
            logger.debug("Bad timestamp %r on %s", entry.get("timestamp"), op_id)
            return Operation.create(payload, op_id=op_id)

    def _payload_for(
        self, name: Any, tool_input: dict[str, Any], cwd: Any
    ) -> Payload | None:
        file_path = tool_input.get("file_path")
        if name in ("Write", "Edit", "MultiEdit"):
            if not isinstance(file_path, str) or not file_path:
                return None

        if name == "Write":
            if not has_text_fields(tool_input, "content"):
                return None
            return FileCreate(file_path=file_path, content=tool_input.get("content") or "")

        if name == "Edit":
            if not has_text_fields(tool_input, "old_string", "new_string"):
                return None
            return FileEdit(
                file_path=file_path,
                old_string=tool_input.get("old_string") or "",
                new_string=tool_input.get("new_string") or "",
                replace_all=bool(tool_input.get("replace_all", False)),
            )

        if name == "MultiEdit":
            raw_edits = tool_input.get("edits")
            if not isinstance(raw_edits, list):
                raw_edits = []
            edits = [e for e in raw_edits if isinstance(e, dict)]
            if not all(has_text_fields(e, "old_string", "new_string") for e in edits):
                return None
            return FileEdit(
                file_path=file_path,
                edits=tuple(SubEdit.from_dict(e) for e in edits),
                is_multi_edit=True,
            )

        if name == "Bash" and tool_input.get("command"):
            working_dir = cwd if isinstance(cwd, str) and cwd else None
            return self.classifier.classify(str(tool_input["command"]), working_dir)

        return None

    def parse(self, path: Path) -> list[Operation]:
        """Every operation in the log, oldest first."""
        operations = list(self.iter_operations(path))
        logger.debug("Parsed %d operations from %s", len(operations), path)
        return operations

    def _require_tracker(self) -> UndoStateTracker:
        if self.tracker is None:
            raise ValueError("SessionLogParser needs an UndoStateTracker for state views")
        return self.tracker

    def active(self, path: Path) -> list[Operation]:
        """Operations not currently undone, oldest first."""
        tracker = self._require_tracker()
        return tracker.filter_active(self.parse(path), self.log_id(path))

    def undone(self, path: Path) -> list[Operation]:
        """Redo candidates, most recently undone first."""
        tracker = self._require_tracker()
        return tracker.undone_view(self.parse(path), self.log_id(path))
