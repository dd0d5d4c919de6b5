"""Backup storage for pre-mutation snapshots.

A backup is the raw content of a file captured immediately before an
engine mutates it, keyed by the operation id and the purpose of the
snapshot. The engines only depend on the ``BackupStore`` interface.
"""

from __future__ import annotations

import hashlib
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from backstep.core import StorageError, get_logger
from backstep.core.atomic import atomic_write_bytes

logger = get_logger("undo.backups")


class BackupPurpose(str, Enum):
    """Why a snapshot was taken."""

    DELETED = "deleted"  # file removed by undoing a create
    CURRENT = "current"  # content before undoing an edit
    REDO = "redo"  # content before redoing an edit
    REDO_DELETED = "redo-deleted"  # file removed by redoing a delete


@dataclass(frozen=True)
class BackupKey:
    operation_id: str
    purpose: BackupPurpose

    def __str__(self) -> str:
        return f"{self.operation_id}-{self.purpose.value}"


class BackupStore(ABC):
    """Keyed byte-blob store."""

    @abstractmethod
    def put(self, key: BackupKey, data: bytes) -> str:
        """Store a snapshot, replacing any previous one under the key.

        Returns:
            A reference to show the user (a path for file storage).

        Raises:
            OSError: If the snapshot cannot be written.
        """
        ...

    @abstractmethod
    def get(self, key: BackupKey) -> bytes | None:
        """Fetch a snapshot, or None if absent."""
        ...

    def contains(self, key: BackupKey) -> bool:
        return self.get(key) is not None


class FileBackupStore(BackupStore):
    """One file per key under a backup root.

    Attributes:
        backup_dir: Directory holding one ``<name>.<purpose>`` file per key.
            ``<name>`` is the operation id when it is short and made of
            letters, digits, ``_`` and ``-``, and otherwise ``~`` followed by
            the SHA-256 of the id. Distinct keys never share a file.
    """

    # Ids from logs that do not match are hashed
    _SAFE_ID = re.compile(r"[A-Za-z0-9_-]{1,128}")

    def __init__(self, backup_dir: Path) -> None:
        """Initialize the store, creating the backup root.

        Raises:
            StorageError: If the backup root cannot be created.
        """
        self.backup_dir = backup_dir
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create backup directory {self.backup_dir}: {e}"
            ) from e

    def path_for(self, key: BackupKey) -> Path:
        """File that holds (or would hold) a snapshot."""
        operation_id = key.operation_id
        if not self._SAFE_ID.fullmatch(operation_id):
            digest = hashlib.sha256(operation_id.encode("utf-8", "surrogatepass")).hexdigest()
            operation_id = f"~{digest}"
        return self.backup_dir / f"{operation_id}.{key.purpose.value}"

    def put(self, key: BackupKey, data: bytes) -> str:
        path = self.path_for(key)
        atomic_write_bytes(path, data)
        logger.debug("Stored backup %s (%d bytes)", path, len(data))
        return str(path)

    def get(self, key: BackupKey) -> bytes | None:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot read backup %s: %s", path, e)
            return None


class MemoryBackupStore(BackupStore):
    """Backups held in a dict, for dry runs and tests."""

    def __init__(self) -> None:
        self._blobs: dict[BackupKey, bytes] = {}

    def put(self, key: BackupKey, data: bytes) -> str:
        self._blobs[key] = bytes(data)
        return f"memory:{key}"

    def get(self, key: BackupKey) -> bytes | None:
        return self._blobs.get(key)

    def __len__(self) -> int:
        return len(self._blobs)
