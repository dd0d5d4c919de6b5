"""Session log discovery.

The recording tool keeps one directory per project under its projects
root, named after the project's working directory with path separators
(and whitespace and underscores) replaced by dashes. Each session is a
``<session id>.jsonl`` file inside it.
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from pathlib import Path

from backstep.core import get_logger

logger = get_logger("log.discovery")


@dataclass(frozen=True)
class SessionInfo:
    """A session log found on disk.

    Attributes:
        id: Session id (the file stem).
        project: Project path decoded from the directory name. Lossy,
            since dashes in the original path cannot be told apart.
        raw_project_dir: Directory name as stored.
        file: Path to the log.
    """

    id: str
    project: str
    raw_project_dir: str
    file: Path


class SessionLocator:
    """Locate session logs under a projects root."""

    def __init__(self, projects_dir: Path, windows: bool | None = None) -> None:
        """Initialize the locator.

        Args:
            projects_dir: Root holding one directory per project.
            windows: Use Windows path encoding. Detected from the running
                platform if None.
        """
        self.projects_dir = projects_dir
        self.windows = sys.platform == "win32" if windows is None else windows

    def encode_project(self, cwd: str) -> str:
        """Directory name used for a working directory."""
        if self.windows:
            encoded = re.sub(r":[\\/]", "--", cwd)
            encoded = re.sub(r"[\\/]", "-", encoded)
            return re.sub(r"[\s_]", "-", encoded)
        return re.sub(r"[\s/_]", "-", cwd)

    def decode_project(self, name: str) -> str:
        """Best-effort inverse of ``encode_project``."""
        if self.windows:
            return name.replace("--", ":\\").replace("-", "\\")
        return re.sub(r"^-", "/", name).replace("-", "/")

    def project_dir_for(self, cwd: Path | str) -> Path:
        return self.projects_dir / self.encode_project(str(cwd))

    def current_session_file(self, cwd: Path | str) -> Path | None:
        """Most recently modified log for a working directory.

        Returns:
            The log path, or None if the project has no logs.
        """
        project_dir = self.project_dir_for(cwd)
        try:
            candidates = [p for p in project_dir.iterdir() if p.suffix == ".jsonl"]
        except FileNotFoundError:
            logger.debug("No project directory at %s", project_dir)
            return None

        if not candidates:
            return None
        return max(candidates, key=lambda p: p.stat().st_mtime)

    def all_sessions(self) -> list[SessionInfo]:
        """Every session log under the projects root."""
        try:
            project_dirs = sorted(self.projects_dir.iterdir())
        except FileNotFoundError:
            return []

        sessions = []
        for project_dir in project_dirs:
            if not project_dir.is_dir():
                continue
            for log_file in sorted(project_dir.glob("*.jsonl")):
                sessions.append(
                    SessionInfo(
                        id=log_file.stem,
                        project=self.decode_project(project_dir.name),
                        raw_project_dir=project_dir.name,
                        file=log_file,
                    )
                )
        return sessions

    def find_session(self, session_id: str) -> SessionInfo | None:
        """Look up a session by id across all projects."""
        for session in self.all_sessions():
            if session.id == session_id:
                return session
        return None
