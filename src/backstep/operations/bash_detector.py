"""Shell command classification.

Maps a shell command string to the payload of the operation it most
likely performed, using a short, ordered list of literal patterns.

Example:
    from backstep.operations.bash_detector import BashCommandClassifier

    BashCommandClassifier.classify("mv a.txt b.txt", working_dir="/project")
    # FileRename(old_path='/project/a.txt', new_path='/project/b.txt')
"""

from __future__ import annotations

import os
import re
from typing import ClassVar

from backstep.operations.models import (
    DirectoryCreate,
    FileDelete,
    FileRename,
    Payload,
    ShellCommand,
)


class BashCommandClassifier:
    """Classify shell commands into operation payloads.

    Patterns match whitespace-separated tokens anywhere in the command and
    the first matching rule wins. The command is never parsed as shell.

    Limitations:
        - Quoting is not understood; a quoted path keeps its quotes
        - Only the first path of a multi-path command is captured
        - Globs and variables are captured literally
        - rm with flags other than a single -r/-f group is not recognised
    """

    # Commands containing any of these never classify as a file delete
    RM_EXCLUSIONS: ClassVar[tuple[str, ...]] = ("rmdir",)

    RM_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        r"(?<![\w-])rm\s+(?:-[rf]+\s+)?(\S+)"
    )
    MV_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        r"(?<![\w-])mv\s+(\S+)\s+(\S+)"
    )
    MKDIR_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        r"(?<![\w-])mkdir\s+(?:-p\s+)?(\S+)"
    )

    @classmethod
    def classify(cls, command: str, working_dir: str | None = None) -> Payload:
        """Classify a command.

        Args:
            command: Shell command as recorded.
            working_dir: Directory the command ran in, used to absolutise
                relative paths. Paths are kept as recorded if None.

        Returns:
            FileDelete, FileRename or DirectoryCreate for recognised
            commands, ShellCommand otherwise.
        """
        if not any(excluded in command for excluded in cls.RM_EXCLUSIONS):
            match = cls.RM_PATTERN.search(command)
            if match:
                return FileDelete(
                    file_path=cls._resolve(match.group(1), working_dir),
                    content=None,
                )

        match = cls.MV_PATTERN.search(command)
        if match:
            return FileRename(
                old_path=cls._resolve(match.group(1), working_dir),
                new_path=cls._resolve(match.group(2), working_dir),
            )

        match = cls.MKDIR_PATTERN.search(command)
        if match:
            return DirectoryCreate(dir_path=cls._resolve(match.group(1), working_dir))

        return ShellCommand(command=command)

    @staticmethod
    def _resolve(path: str, working_dir: str | None) -> str:
        if working_dir is None or os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(working_dir, path))
