"""Hook recorder for local sessions.

Run as a pre-tool hook, it receives one tool invocation as JSON (on stdin,
or as the first command-line argument) and appends the matching operation
to the current local session. Two payload shapes are accepted::

    {"tool_name": "Edit", "tool_input": {...}, "tool_use_id": "...", "cwd": "..."}
    {"tool": "Edit", "parameters": {...}}

Because it runs before the tool, it can capture what the tool is about to
destroy: the full content of a file about to be edited or deleted.
"""

from __future__ import annotations

import json
import os
import re
import sys
from pathlib import Path
from typing import Any

from backstep.config import ConfigLoader
from backstep.core import BackstepError, get_logger, setup_logging
from backstep.operations.bash_detector import BashCommandClassifier
from backstep.operations.models import (
    DirectoryDelete,
    FileCreate,
    FileDelete,
    FileEdit,
    Operation,
    Payload,
    ShellCommand,
    SubEdit,
    has_text_fields,
)
from backstep.sessions.models import new_session_id
from backstep.sessions.storage import LocalSessionStorage

logger = get_logger("hooks.recorder")

RMDIR_PATTERN = re.compile(r"(?<![\w-])rmdir\s+(?:-p\s+)?(\S+)")
RM_PATTERN = re.compile(r"(?<![\w-])rm\s+(?P<flags>(?:-[A-Za-z]+\s+)*)(?P<path>\S+)")


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


class HookRecorder:
    """Append tool invocations to the current local session.

    Attributes:
        storage: Local session storage.
    """

    def __init__(self, storage: LocalSessionStorage) -> None:
        self.storage = storage

    def current_session_id(self) -> str:
        """Current session id, starting a new session if there is none."""
        session_id = self.storage.get_current()
        if session_id is None:
            session_id = new_session_id()
            self.storage.set_current(session_id)
            logger.info("Started local session %s", session_id)
        return session_id

    def record(self, event: dict[str, Any]) -> Operation | None:
        """Record one tool invocation.

        Args:
            event: Hook payload in either accepted shape.

        Returns:
            The recorded operation, or None if the tool is not tracked.

        Raises:
            StorageError: If the session cannot be saved.
        """
        payload = self.payload_for(event)
        if payload is None:
            return None

        operation = Operation.create(payload, op_id=event.get("tool_use_id"))
        session_id = self.current_session_id()
        session = self.storage.load_or_create(session_id)
        session.add(operation)
        self.storage.save(session)
        logger.debug("Recorded %s %s in %s", operation.kind.value, operation.id, session_id)
        return operation

    def payload_for(self, event: dict[str, Any]) -> Payload | None:
        """Map a hook payload to an operation payload."""
        tool = event.get("tool_name") or event.get("tool")
        params = event.get("tool_input") or event.get("parameters") or {}
        if not isinstance(params, dict):
            return None
        cwd = event.get("cwd") or os.getcwd()

        file_path = params.get("file_path")
        if tool in ("Write", "Edit", "MultiEdit"):
            if not isinstance(file_path, str) or not file_path:
                return None
            raw_edits = params.get("edits")
            if not isinstance(raw_edits, list):
                raw_edits = []
            edits = [e for e in raw_edits if isinstance(e, dict)]
            texts = [params, *edits] if tool == "MultiEdit" else [params]
            if not all(has_text_fields(t, "content", "old_string", "new_string") for t in texts):
                return None

        if tool == "Write":
            return FileCreate(file_path=file_path, content=params.get("content") or "")

        if tool == "Edit":
            return FileEdit(
                file_path=file_path,
                old_string=params.get("old_string") or "",
                new_string=params.get("new_string") or "",
                replace_all=bool(params.get("replace_all", False)),
                original_content=_read_text(Path(file_path)),
            )

        if tool == "MultiEdit":
            return FileEdit(
                file_path=file_path,
                edits=tuple(SubEdit.from_dict(e) for e in edits),
                is_multi_edit=True,
                original_content=_read_text(Path(file_path)),
            )

        if tool == "Bash" and params.get("command"):
            return self.classify_command(str(params["command"]), cwd)

        return None

    def classify_command(self, command: str, cwd: str) -> Payload:
        """Classify a shell command, capturing what a delete would destroy."""
        match = RMDIR_PATTERN.search(command)
        if match:
            return DirectoryDelete(dir_path=_absolute(match.group(1), cwd))

        match = RM_PATTERN.search(command)
        if match:
            path = Path(_absolute(match.group("path"), cwd))
            recursive = any(c in match.group("flags") for c in "rR")
            if recursive and path.is_dir():
                return DirectoryDelete(dir_path=str(path))
            if path.is_file():
                return FileDelete(file_path=str(path), content=_read_text(path))
            return ShellCommand(command=command)

        payload = BashCommandClassifier.classify(command, cwd)
        if isinstance(payload, FileDelete):
            # rm forms the pattern above does not cover
            return ShellCommand(command=command)
        return payload


def _absolute(path: str, cwd: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(cwd, path))


def _read_event(argv: list[str]) -> dict[str, Any]:
    raw = argv[0] if argv else sys.stdin.read()
    if not raw.strip():
        return {}
    event = json.loads(raw)
    if not isinstance(event, dict):
        raise ValueError("Hook payload must be a JSON object")
    return event


def main(argv: list[str] | None = None) -> int:
    """Hook entry point.

    Failures are reported on stderr but never block the tool: the exit
    status is always 0.
    """
    args = sys.argv[1:] if argv is None else argv
    try:
        config = ConfigLoader().load_all()
        setup_logging(
            log_dir=config.storage.resolved_log_dir() if config.display.file_logging else None,
            console_output=False,
        )
        event = _read_event(args)
        storage = LocalSessionStorage(config.storage.resolved_sessions_dir())
        HookRecorder(storage).record(event)
    except (BackstepError, OSError, ValueError) as e:
        print(f"Failed to track operation: {e}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
