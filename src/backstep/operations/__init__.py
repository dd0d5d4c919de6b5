"""Operation data model and shell command classification."""

from backstep.operations.bash_detector import BashCommandClassifier
from backstep.operations.models import (
    PAYLOAD_TYPES,
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
    SubEdit,
    has_text_fields,
    parse_timestamp,
)

__all__ = [
    "PAYLOAD_TYPES",
    "BashCommandClassifier",
    "DirectoryCreate",
    "DirectoryDelete",
    "FileCreate",
    "FileDelete",
    "FileEdit",
    "FileRename",
    "Operation",
    "OperationKind",
    "Payload",
    "ShellCommand",
    "SubEdit",
    "has_text_fields",
    "parse_timestamp",
]
