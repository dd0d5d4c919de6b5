"""Operation data model.

An Operation is one reversible action reconstructed from a recorded tool
invocation. Its payload is one of a closed set of frozen dataclasses, and
the payload type fixes the operation kind:

- FileCreate: a Write call
- FileEdit: an Edit or MultiEdit call (or a legacy full-content edit)
- FileDelete / FileRename / DirectoryCreate: shell commands recognised
  by the heuristics in ``bash_detector``
- DirectoryDelete: recorded only by the local hook recorder
- ShellCommand: any other shell command, never reversible

Example:
    op = Operation.create(FileCreate(file_path="/tmp/a.txt", content="hello"))
    data = op.to_dict()
    assert Operation.from_dict(data) == op
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar


class OperationKind(str, Enum):
    """Kinds of recorded operations."""

    FILE_CREATE = "file_create"
    FILE_EDIT = "file_edit"
    FILE_DELETE = "file_delete"
    FILE_RENAME = "file_rename"
    DIRECTORY_CREATE = "directory_create"
    DIRECTORY_DELETE = "directory_delete"
    BASH_COMMAND = "bash_command"


@dataclass(frozen=True)
class FileCreate:
    """A file written from scratch."""

    kind: ClassVar[OperationKind] = OperationKind.FILE_CREATE

    file_path: str
    content: str | None = ""

    def to_dict(self) -> dict[str, Any]:
        return {"filePath": self.file_path, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileCreate:
        return cls(file_path=data["filePath"], content=data.get("content"))


@dataclass(frozen=True)
class SubEdit:
    """One (old, new) substitution inside a MultiEdit."""

    old_string: str
    new_string: str
    replace_all: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "old_string": self.old_string,
            "new_string": self.new_string,
            "replace_all": self.replace_all,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubEdit:
        return cls(
            old_string=data.get("old_string") or "",
            new_string=data.get("new_string") or "",
            replace_all=bool(data.get("replace_all", False)),
        )


@dataclass(frozen=True)
class FileEdit:
    """A substring substitution in an existing file.

    A single edit uses ``old_string``/``new_string``/``replace_all``. A
    multi-edit sets ``is_multi_edit`` and carries ``edits`` in application
    order. Records from the local hook recorder may instead carry the full
    pre-edit file in ``original_content``.
    """

    kind: ClassVar[OperationKind] = OperationKind.FILE_EDIT

    file_path: str
    old_string: str = ""
    new_string: str = ""
    replace_all: bool = False
    edits: tuple[SubEdit, ...] = ()
    is_multi_edit: bool = False
    original_content: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"filePath": self.file_path}
        if self.is_multi_edit:
            data["edits"] = [edit.to_dict() for edit in self.edits]
            data["isMultiEdit"] = True
        else:
            data["oldString"] = self.old_string
            data["newString"] = self.new_string
            data["replaceAll"] = self.replace_all
        if self.original_content is not None:
            data["originalContent"] = self.original_content
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileEdit:
        return cls(
            file_path=data["filePath"],
            old_string=data.get("oldString") or "",
            new_string=data.get("newString") or "",
            replace_all=bool(data.get("replaceAll", False)),
            edits=tuple(SubEdit.from_dict(e) for e in data.get("edits") or []),
            is_multi_edit=bool(data.get("isMultiEdit", False)),
            original_content=data.get("originalContent"),
        )


@dataclass(frozen=True)
class FileDelete:
    """A deleted file. ``content`` is None when it could not be captured."""

    kind: ClassVar[OperationKind] = OperationKind.FILE_DELETE

    file_path: str
    content: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"filePath": self.file_path, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileDelete:
        return cls(file_path=data["filePath"], content=data.get("content"))


@dataclass(frozen=True)
class FileRename:
    """A file moved from ``old_path`` to ``new_path``."""

    kind: ClassVar[OperationKind] = OperationKind.FILE_RENAME

    old_path: str
    new_path: str

    def to_dict(self) -> dict[str, Any]:
        return {"oldPath": self.old_path, "newPath": self.new_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileRename:
        return cls(old_path=data["oldPath"], new_path=data["newPath"])


@dataclass(frozen=True)
class DirectoryCreate:
    kind: ClassVar[OperationKind] = OperationKind.DIRECTORY_CREATE

    dir_path: str

    def to_dict(self) -> dict[str, Any]:
        return {"dirPath": self.dir_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryCreate:
        return cls(dir_path=data["dirPath"])


@dataclass(frozen=True)
class DirectoryDelete:
    kind: ClassVar[OperationKind] = OperationKind.DIRECTORY_DELETE

    dir_path: str

    def to_dict(self) -> dict[str, Any]:
        return {"dirPath": self.dir_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryDelete:
        return cls(dir_path=data["dirPath"])


@dataclass(frozen=True)
class ShellCommand:
    """An opaque shell command."""

    kind: ClassVar[OperationKind] = OperationKind.BASH_COMMAND

    command: str

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShellCommand:
        return cls(command=data["command"])


Payload = (
    FileCreate
    | FileEdit
    | FileDelete
    | FileRename
    | DirectoryCreate
    | DirectoryDelete
    | ShellCommand
)

PAYLOAD_TYPES: dict[OperationKind, type[Payload]] = {
    OperationKind.FILE_CREATE: FileCreate,
    OperationKind.FILE_EDIT: FileEdit,
    OperationKind.FILE_DELETE: FileDelete,
    OperationKind.FILE_RENAME: FileRename,
    OperationKind.DIRECTORY_CREATE: DirectoryCreate,
    OperationKind.DIRECTORY_DELETE: DirectoryDelete,
    OperationKind.BASH_COMMAND: ShellCommand,
}


def _now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


# Wire keys whose values must be strings when present
_TEXT_KEYS = (
    "filePath",
    "content",
    "oldString",
    "newString",
    "originalContent",
    "oldPath",
    "newPath",
    "dirPath",
    "command",
)


def has_text_fields(data: dict[str, Any], *keys: str) -> bool:
    """Whether every key in ``keys`` is absent, null or a string in ``data``."""
    return all(isinstance(data.get(key), (str, type(None))) for key in keys)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given.

    Args:
        value: Timestamp string (a trailing ``Z`` is accepted) or datetime.

    Returns:
        Timezone-aware datetime. The current time if value is empty.

    Raises:
        ValueError: If value is a string that is not ISO-8601.
    """
    if isinstance(value, datetime):
        parsed = value
    elif not value:
        return _now()
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class Operation:
    """Single reversible action.

    Attributes:
        payload: Kind-specific fields; its type fixes ``kind``.
        id: Identifier, unique within the source log.
        timestamp: When the action was recorded.
        undone: Whether the action is currently reverted. A derived view
            attribute for log-sourced operations, persisted inline for
            local sessions.
    """

    payload: Payload
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)
    undone: bool = False

    @classmethod
    def create(
        cls,
        payload: Payload,
        op_id: str | None = None,
        timestamp: datetime | str | None = None,
    ) -> Operation:
        """Build an operation, generating an id and timestamp if missing.

        Args:
            payload: Kind-specific payload.
            op_id: Identifier from the originating tool invocation.
            timestamp: Recording time (datetime or ISO string).

        Returns:
            New Operation.
        """
        return cls(
            payload=payload,
            id=op_id or _new_id(),
            timestamp=parse_timestamp(timestamp),
        )

    @property
    def kind(self) -> OperationKind:
        return self.payload.kind

    @property
    def target(self) -> str:
        """Primary path or command this operation acts on."""
        payload = self.payload
        if isinstance(payload, (FileCreate, FileEdit, FileDelete)):
            return payload.file_path
        if isinstance(payload, FileRename):
            return f"{payload.old_path} -> {payload.new_path}"
        if isinstance(payload, (DirectoryCreate, DirectoryDelete)):
            return payload.dir_path
        return payload.command

    def with_undone(self, undone: bool) -> Operation:
        """Return a copy with the undone flag set."""
        if undone == self.undone:
            return self
        return replace(self, undone=undone)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the local-session wire format."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.kind.value,
            "data": self.payload.to_dict(),
            "undone": self.undone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Operation:
        """Deserialize from the local-session wire format.

        Raises:
            ValueError: If the type is unknown or the payload is malformed.
        """
        kind = OperationKind(data["type"])
        raw = data.get("data") or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Malformed data for {kind.value} operation")
        edits = raw.get("edits") or []
        if not isinstance(edits, list):
            raise ValueError(f"Malformed edits for {kind.value} operation")
        if not has_text_fields(raw, *_TEXT_KEYS) or not all(
            isinstance(e, dict) and has_text_fields(e, "old_string", "new_string")
            for e in edits
        ):
            raise ValueError(f"Non-text field in {kind.value} operation")
        try:
            payload = PAYLOAD_TYPES[kind].from_dict(raw)
        except KeyError as e:
            raise ValueError(f"Missing field {e} for {kind.value} operation") from e

        return cls(
            payload=payload,
            id=data.get("id") or _new_id(),
            timestamp=parse_timestamp(data.get("timestamp")),
            undone=bool(data.get("undone", False)),
        )
