"""Shared test fixtures for Backstep tests.

Fixture Dependency Hierarchy
============================

::

    tmp_path (pytest)
    ├── storage_root (isolated ~/.backstep)
    │   ├── tracker (UndoStateTracker)
    │   ├── backups (FileBackupStore)
    │   └── session_storage (LocalSessionStorage)
    ├── workspace (directory the recorded tools acted on)
    └── session_log (LogBuilder writing a JSONL session log)

    clean_env (removes BACKSTEP_* variables)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import pytest

from backstep.sessions.storage import LocalSessionStorage
from backstep.undo.backups import FileBackupStore
from backstep.undo.tracker import UndoStateTracker


class LogBuilder:
    """Append entries to a session log in the recording tool's format."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._count = 0

    def raw(self, line: str) -> LogBuilder:
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
        return self

    def entry(self, entry: dict[str, Any]) -> LogBuilder:
        return self.raw(json.dumps(entry))

    def tool(
        self,
        name: str,
        tool_input: dict[str, Any],
        tool_id: str | None = None,
        cwd: str | None = None,
        timestamp: str | None = None,
    ) -> LogBuilder:
        """Append an assistant entry holding one tool call."""
        self._count += 1
        entry: dict[str, Any] = {
            "type": "assistant",
            "timestamp": timestamp or f"2025-01-01T10:00:{self._count:02d}Z",
            "message": {
                "role": "assistant",
                "content": [
                    {
                        "type": "tool_use",
                        "id": tool_id or f"toolu_{self._count:02d}",
                        "name": name,
                        "input": tool_input,
                    }
                ],
            },
        }
        if cwd is not None:
            entry["cwd"] = cwd
        return self.entry(entry)

    def write(self, path: Path | str, content: str, tool_id: str | None = None) -> LogBuilder:
        return self.tool("Write", {"file_path": str(path), "content": content}, tool_id)

    def edit(
        self,
        path: Path | str,
        old: str,
        new: str,
        replace_all: bool = False,
        tool_id: str | None = None,
    ) -> LogBuilder:
        return self.tool(
            "Edit",
            {
                "file_path": str(path),
                "old_string": old,
                "new_string": new,
                "replace_all": replace_all,
            },
            tool_id,
        )

    def bash(self, command: str, tool_id: str | None = None, cwd: str | None = None) -> LogBuilder:
        return self.tool("Bash", {"command": command}, tool_id, cwd=cwd)


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Isolated storage root."""
    root = tmp_path / "backstep-home"
    root.mkdir()
    return root


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Directory for files touched by recorded operations."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def tracker(storage_root: Path) -> UndoStateTracker:
    return UndoStateTracker(storage_root / "undone-operations.json")


@pytest.fixture
def backups(storage_root: Path) -> FileBackupStore:
    return FileBackupStore(storage_root / "backups")


@pytest.fixture
def session_storage(storage_root: Path) -> LocalSessionStorage:
    return LocalSessionStorage(storage_root / "sessions")


@pytest.fixture
def session_log(tmp_path: Path) -> LogBuilder:
    """Empty session log under an isolated projects directory."""
    project_dir = tmp_path / "projects" / "-workspace"
    project_dir.mkdir(parents=True)
    path = project_dir / "session-1.jsonl"
    path.touch()
    return LogBuilder(path)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove BACKSTEP_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("BACKSTEP_"):
            monkeypatch.delenv(key, raising=False)
