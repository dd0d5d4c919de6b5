"""Local session persistence.

Sessions are stored as ``<session id>.json`` files in one directory, next
to a plain-text ``current-session`` pointer naming the session the hook
recorder appends to.
"""

from __future__ import annotations

import contextlib
import shutil
from pathlib import Path

from backstep.core import StorageError, get_logger
from backstep.core.atomic import atomic_write_bytes
from backstep.sessions.models import LocalSession

logger = get_logger("sessions.storage")


class SessionNotFoundError(StorageError):
    """Session not found in storage."""


class LocalSessionStorage:
    """Handles local session persistence to disk.

    Writes are atomic and the previous file is kept as a ``.backup`` copy,
    used to recover a session whose file is found corrupted.

    Attributes:
        sessions_dir: Directory holding the session files.
        pointer_file: File naming the current session.
    """

    SESSION_EXTENSION = ".json"
    BACKUP_EXTENSION = ".backup"
    POINTER_NAME = "current-session"

    def __init__(self, sessions_dir: Path, pointer_file: Path | None = None) -> None:
        """Initialize session storage.

        Args:
            sessions_dir: Directory for session files.
            pointer_file: Current-session pointer. Defaults to
                ``current-session`` in the parent of ``sessions_dir``.

        Raises:
            StorageError: If the directory cannot be created.
        """
        self.sessions_dir = sessions_dir
        self.pointer_file = pointer_file or sessions_dir.parent / self.POINTER_NAME
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create sessions directory {self.sessions_dir}: {e}"
            ) from e
        # Owner only
        with contextlib.suppress(OSError):
            self.sessions_dir.chmod(0o700)

    def get_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}{self.SESSION_EXTENSION}"

    def get_backup_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}{self.BACKUP_EXTENSION}"

    def exists(self, session_id: str) -> bool:
        return self.get_path(session_id).exists()

    def save(self, session: LocalSession) -> None:
        """Save a session, keeping the previous file as a backup.

        Raises:
            StorageError: If the write fails.
        """
        session_path = self.get_path(session.session_id)
        if session_path.exists():
            try:
                shutil.copy2(session_path, self.get_backup_path(session.session_id))
            except OSError as e:
                logger.warning("Failed to create session backup: %s", e)

        try:
            atomic_write_bytes(session_path, session.to_json().encode("utf-8"))
        except (OSError, UnicodeEncodeError) as e:
            raise StorageError(f"Failed to save session {session.session_id}: {e}") from e

        logger.debug("Saved session %s", session.session_id)

    def load(self, session_id: str, auto_recover: bool = True) -> LocalSession:
        """Load a session.

        Args:
            session_id: The session to load.
            auto_recover: Restore from the backup copy if the file is corrupted.

        Raises:
            SessionNotFoundError: If the session does not exist.
            StorageError: If the file is unreadable or corrupted beyond recovery.
        """
        session_path = self.get_path(session_id)
        try:
            text = session_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise SessionNotFoundError(f"Session not found: {session_id}") from None
        except OSError as e:
            raise StorageError(f"Failed to load session {session_id}: {e}") from e

        try:
            return LocalSession.from_json(text)
        except (KeyError, TypeError, ValueError) as e:
            if auto_recover and self.recover_from_backup(session_id):
                logger.warning("Session %s was corrupted, recovered from backup", session_id)
                return self.load(session_id, auto_recover=False)
            raise StorageError(f"Session file corrupted: {session_id}") from e

    def load_or_create(self, session_id: str) -> LocalSession:
        try:
            return self.load(session_id)
        except SessionNotFoundError:
            return LocalSession(session_id=session_id)

    def recover_from_backup(self, session_id: str) -> bool:
        """Replace a session file with its backup copy.

        Returns:
            True if recovery succeeded.
        """
        backup_path = self.get_backup_path(session_id)
        if not backup_path.exists():
            return False

        try:
            shutil.copy2(backup_path, self.get_path(session_id))
        except OSError as e:
            logger.error("Failed to recover session %s: %s", session_id, e)
            return False

        logger.info("Recovered session %s from backup", session_id)
        return True

    def list_sessions(self) -> list[str]:
        """Ids of every stored session, sorted."""
        return sorted(p.stem for p in self.sessions_dir.glob(f"*{self.SESSION_EXTENSION}"))

    def get_current(self) -> str | None:
        """Id named by the current-session pointer, or None."""
        try:
            session_id = self.pointer_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot read current session pointer: %s", e)
            return None
        return session_id or None

    def set_current(self, session_id: str) -> None:
        """Point the current-session pointer at a session.

        Raises:
            StorageError: If the pointer cannot be written.
        """
        try:
            self.pointer_file.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(self.pointer_file, session_id.encode("utf-8"), mode=None)
        except OSError as e:
            raise StorageError(f"Cannot write current session pointer: {e}") from e
        logger.debug("Current session set to %s", session_id)
