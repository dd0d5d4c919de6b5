"""Per-kind reverse and forward handlers.

Each operation kind has a ``KindHandler`` pairing the function that
reverses it (undo) with the function that reapplies it (redo). Handlers
either return a ``StepOutcome`` or raise an ``OperationError``; the engines
turn both into ``OperationResult`` values.

File content is handled as raw bytes and decoded as UTF-8 only where a
substring substitution is needed, so untouched bytes (line endings, BOMs)
survive a round trip unchanged.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from backstep.core import get_logger
from backstep.core.errors import (
    AlreadyExistsError,
    ContentUnavailableError,
    NotFoundError,
    OperationIOError,
    UnsupportedError,
)
from backstep.operations.models import (
    DirectoryCreate,
    DirectoryDelete,
    FileCreate,
    FileDelete,
    FileEdit,
    FileRename,
    Operation,
    OperationKind,
    Payload,
    ShellCommand,
)
from backstep.undo.backups import BackupKey, BackupPurpose, BackupStore

logger = get_logger("undo.handlers")

P = TypeVar("P", bound=Payload)


@dataclass
class StepOutcome:
    """Successful handler outcome."""

    message: str
    backup_path: str | None = None


Handler = Callable[[Operation, BackupStore], StepOutcome]


@dataclass(frozen=True)
class KindHandler:
    reverse: Handler
    forward: Handler


class HandlerRegistry:
    """Maps operation kinds to their handler pairs."""

    def __init__(self) -> None:
        self._handlers: dict[OperationKind, KindHandler] = {}

    def register(self, kind: OperationKind, reverse: Handler, forward: Handler) -> None:
        """Register (or replace) the handlers for a kind."""
        self._handlers[kind] = KindHandler(reverse=reverse, forward=forward)

    def get(self, kind: OperationKind) -> KindHandler:
        """Look up the handlers for a kind.

        Raises:
            UnsupportedError: If nothing is registered for the kind.
        """
        try:
            return self._handlers[kind]
        except KeyError:
            raise UnsupportedError(f"No handler registered for {kind.value}") from None

    def __contains__(self, kind: object) -> bool:
        return kind in self._handlers


@contextmanager
def _io(action: str) -> Iterator[None]:
    """Convert OSError raised inside the block into OperationIOError."""
    try:
        yield
    except OSError as e:
        raise OperationIOError(f"Failed to {action}: {e.strerror or e}", cause=e) from e


def _payload_of(operation: Operation, cls: type[P]) -> P:
    payload = operation.payload
    if not isinstance(payload, cls):
        raise UnsupportedError(
            f"Handler for {cls.kind.value} cannot process {operation.kind.value} operation"
        )
    return payload


def _encode(text: object, path: str) -> bytes:
    if not isinstance(text, str):
        raise ContentUnavailableError(f"Recorded content for {path} is not text")
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ContentUnavailableError(f"Recorded content for {path} is not valid UTF-8") from e


def _decode(raw: bytes, path: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ContentUnavailableError(f"Cannot edit non-UTF-8 file: {path}") from e


def _read_existing(path: str, missing_message: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        raise NotFoundError(missing_message) from None


def _write_file(path: str, data: bytes) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def _replace(text: str, old: str, new: str, replace_all: bool) -> str:
    return text.replace(old, new) if replace_all else text.replace(old, new, 1)


def _key(operation: Operation, purpose: BackupPurpose) -> BackupKey:
    return BackupKey(operation.id, purpose)


# =============================================================================
# Reverse (undo)
# =============================================================================


def reverse_file_create(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileCreate)
    path = payload.file_path

    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        raise ContentUnavailableError(
            f"Cannot undo file creation: {path} does not exist"
        ) from None
    except OSError as e:
        raise OperationIOError(f"Failed to read {path}: {e.strerror or e}", cause=e) from e

    with _io(f"back up {path}"):
        backup_path = backups.put(_key(operation, BackupPurpose.DELETED), data)
    with _io(f"delete {path}"):
        Path(path).unlink()

    return StepOutcome(f"File deleted: {path}", backup_path)


def _reverse_text(payload: FileEdit, current: str) -> str:
    """Content after reversing ``payload`` in ``current``."""
    path = payload.file_path
    if payload.original_content is not None:
        return payload.original_content

    if payload.is_multi_edit:
        reverted = current
        skipped = 0
        for edit in reversed(payload.edits):
            if edit.new_string and edit.new_string in reverted:
                reverted = _replace(reverted, edit.new_string, edit.old_string, edit.replace_all)
            else:
                skipped += 1
        if skipped:
            logger.info(
                "Skipped %d of %d sub-edits not present in %s",
                skipped,
                len(payload.edits),
                path,
            )
        return reverted

    if not payload.new_string:
        raise ContentUnavailableError(f"Cannot undo file edit: insufficient data for {path}")
    if payload.replace_all:
        return current.replace(payload.new_string, payload.old_string)
    if payload.new_string not in current:
        raise NotFoundError(f"Cannot undo edit: expected string not found in {path}")
    return current.replace(payload.new_string, payload.old_string, 1)


def _forward_text(payload: FileEdit, current: str) -> str:
    """Content after reapplying ``payload`` to ``current``."""
    path = payload.file_path
    if payload.original_content is not None:
        # Only the pre-edit content was recorded; the edited result is unknown
        raise ContentUnavailableError(
            f"Cannot redo legacy file edit: insufficient data for {path}"
        )

    if payload.is_multi_edit:
        redone = current
        for edit in payload.edits:
            if edit.old_string and edit.old_string in redone:
                redone = _replace(redone, edit.old_string, edit.new_string, edit.replace_all)
        return redone

    if not payload.old_string:
        raise ContentUnavailableError(f"Cannot redo file edit: insufficient data for {path}")
    if payload.replace_all:
        return current.replace(payload.old_string, payload.new_string)
    if payload.old_string not in current:
        raise NotFoundError(f"Cannot redo edit: original string not found in {path}")
    return current.replace(payload.old_string, payload.new_string, 1)


def reverse_file_edit(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileEdit)
    path = payload.file_path

    with _io(f"read {path}"):
        raw = _read_existing(path, f"Cannot undo edit: {path} does not exist")
    reverted = _encode(_reverse_text(payload, _decode(raw, path)), path)

    with _io(f"back up {path}"):
        backup_path = backups.put(_key(operation, BackupPurpose.CURRENT), raw)
    with _io(f"write {path}"):
        _write_file(path, reverted)

    return StepOutcome(f"File edit reverted: {path}", backup_path)


def reverse_file_delete(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileDelete)
    path = payload.file_path

    if payload.content is not None:
        data: bytes | None = _encode(payload.content, path)
    else:
        # A redo of this delete may have captured the file
        data = backups.get(_key(operation, BackupPurpose.REDO_DELETED))

    if data is None:
        raise ContentUnavailableError(
            f"Cannot restore file: content not available for {path}"
        )

    with _io(f"restore {path}"):
        _write_file(path, data)

    return StepOutcome(f"File restored: {path}")


def reverse_file_rename(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileRename)

    with _io(f"rename {payload.new_path} back to {payload.old_path}"):
        os.rename(payload.new_path, payload.old_path)

    return StepOutcome(f"File renamed back: {payload.new_path} -> {payload.old_path}")


def reverse_directory_create(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, DirectoryCreate)

    # Never recursive: contents may not be ours to delete
    with _io(f"remove directory {payload.dir_path}"):
        os.rmdir(payload.dir_path)

    return StepOutcome(f"Directory removed: {payload.dir_path}")


def reverse_directory_delete(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, DirectoryDelete)

    with _io(f"recreate directory {payload.dir_path}"):
        os.makedirs(payload.dir_path, exist_ok=True)

    return StepOutcome(
        f"Directory restored: {payload.dir_path} (previous contents are not restored)"
    )


def reverse_shell_command(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, ShellCommand)
    raise UnsupportedError(
        f"Cannot auto-undo bash command: {payload.command}\n"
        "Please manually revert any changes."
    )


# =============================================================================
# Forward (redo)
# =============================================================================


def forward_file_create(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileCreate)
    path = payload.file_path

    if os.path.lexists(path):
        raise AlreadyExistsError(f"Cannot redo file creation: {path} already exists")

    data = backups.get(_key(operation, BackupPurpose.DELETED))
    if data is None and payload.content is not None:
        data = _encode(payload.content, path)
    if data is None:
        raise ContentUnavailableError(
            f"Cannot redo file creation: no content available for {path}"
        )

    with _io(f"recreate {path}"):
        _write_file(path, data)

    return StepOutcome(f"File recreated: {path}")


def forward_file_edit(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileEdit)
    path = payload.file_path

    with _io(f"read {path}"):
        raw = _read_existing(path, f"Cannot redo edit: {path} does not exist")
    current = _decode(raw, path)

    # Restore the bytes captured by the undo if the file still holds what it wrote
    snapshot = backups.get(_key(operation, BackupPurpose.CURRENT))
    redone: bytes | None = None
    if snapshot is not None and payload.original_content is None:
        try:
            if _reverse_text(payload, _decode(snapshot, path)) == current:
                redone = snapshot
        except (ContentUnavailableError, NotFoundError):
            redone = None
    if redone is None:
        redone = _encode(_forward_text(payload, current), path)

    with _io(f"back up {path}"):
        backup_path = backups.put(_key(operation, BackupPurpose.REDO), raw)
    with _io(f"write {path}"):
        _write_file(path, redone)

    return StepOutcome(f"File edit redone: {path}", backup_path)


def forward_file_delete(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileDelete)
    path = payload.file_path

    with _io(f"read {path}"):
        data = _read_existing(path, f"Cannot redo file deletion: {path} does not exist")
    with _io(f"back up {path}"):
        backup_path = backups.put(_key(operation, BackupPurpose.REDO_DELETED), data)
    with _io(f"delete {path}"):
        Path(path).unlink()

    return StepOutcome(f"File deleted again: {path}", backup_path)


def forward_file_rename(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, FileRename)

    if not os.path.lexists(payload.old_path):
        raise NotFoundError(f"Cannot redo rename: {payload.old_path} does not exist")
    if os.path.lexists(payload.new_path):
        raise AlreadyExistsError(f"Cannot redo rename: {payload.new_path} already exists")

    with _io(f"rename {payload.old_path} to {payload.new_path}"):
        os.rename(payload.old_path, payload.new_path)

    return StepOutcome(f"File renamed again: {payload.old_path} -> {payload.new_path}")


def forward_directory_create(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, DirectoryCreate)

    if os.path.lexists(payload.dir_path):
        raise AlreadyExistsError(
            f"Cannot redo directory creation: {payload.dir_path} already exists"
        )

    with _io(f"create directory {payload.dir_path}"):
        os.makedirs(payload.dir_path)

    return StepOutcome(f"Directory created again: {payload.dir_path}")


def forward_directory_delete(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, DirectoryDelete)

    if not os.path.isdir(payload.dir_path):
        raise NotFoundError(
            f"Cannot redo directory deletion: {payload.dir_path} does not exist"
        )

    with _io(f"remove directory {payload.dir_path}"):
        os.rmdir(payload.dir_path)

    return StepOutcome(f"Directory deleted again: {payload.dir_path}")


def forward_shell_command(operation: Operation, backups: BackupStore) -> StepOutcome:
    payload = _payload_of(operation, ShellCommand)
    raise UnsupportedError(
        f"Cannot redo bash command: {payload.command}\n"
        "Please manually re-run the command."
    )


def default_registry() -> HandlerRegistry:
    """Registry with the built-in handlers for every operation kind."""
    registry = HandlerRegistry()
    registry.register(OperationKind.FILE_CREATE, reverse_file_create, forward_file_create)
    registry.register(OperationKind.FILE_EDIT, reverse_file_edit, forward_file_edit)
    registry.register(OperationKind.FILE_DELETE, reverse_file_delete, forward_file_delete)
    registry.register(OperationKind.FILE_RENAME, reverse_file_rename, forward_file_rename)
    registry.register(
        OperationKind.DIRECTORY_CREATE, reverse_directory_create, forward_directory_create
    )
    registry.register(
        OperationKind.DIRECTORY_DELETE, reverse_directory_delete, forward_directory_delete
    )
    registry.register(
        OperationKind.BASH_COMMAND, reverse_shell_command, forward_shell_command
    )
    return registry
