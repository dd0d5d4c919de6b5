"""Undo previews.

Describes what undoing an operation would do to the filesystem. Previews
read files but never modify them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from backstep.operations.models import (
    DirectoryCreate,
    DirectoryDelete,
    FileCreate,
    FileDelete,
    FileEdit,
    FileRename,
    Operation,
    ShellCommand,
)

CONTEXT_LINES = 2
DIFF_LINES = 10


@dataclass(frozen=True)
class Preview:
    """Description of a pending undo.

    Attributes:
        text: Multi-line description.
        has_content: Whether ``text`` includes file content.
        action: One of delete, revert, restore, rename, remove, manual,
            or none when nothing would change (an error, or already undone).
    """

    text: str
    has_content: bool = False
    action: str = "none"


def _head(content: str, max_lines: int) -> str:
    lines = content.split("\n")
    head = "\n".join(lines[:max_lines])
    return head + "\n..." if len(lines) > max_lines else head


class OperationPreview:
    """Generate undo previews.

    Attributes:
        max_lines: Lines of file content included for creates and deletes.
    """

    def __init__(self, max_lines: int = 5) -> None:
        self.max_lines = max_lines

    def generate(self, operation: Operation) -> Preview:
        payload = operation.payload
        if isinstance(payload, FileCreate):
            return self._file_create(payload)
        if isinstance(payload, FileEdit):
            return self._file_edit(payload)
        if isinstance(payload, FileDelete):
            return self._file_delete(payload)
        if isinstance(payload, FileRename):
            return Preview(
                f"Will rename back: {payload.new_path} -> {payload.old_path}",
                action="rename",
            )
        if isinstance(payload, DirectoryCreate):
            if Path(payload.dir_path).exists():
                return Preview(f"Will remove directory: {payload.dir_path}", action="remove")
            return Preview(f"Directory already removed: {payload.dir_path}")
        if isinstance(payload, DirectoryDelete):
            return Preview(f"Will restore directory: {payload.dir_path}", action="restore")
        if isinstance(payload, ShellCommand):
            return Preview(
                f"Cannot undo bash command: {payload.command}\n"
                "Manual intervention required.",
                action="manual",
            )
        return Preview(f"No preview available for {operation.kind.value}")

    def _file_create(self, payload: FileCreate) -> Preview:
        path = Path(payload.file_path)
        if not path.exists():
            return Preview(f"File does not exist: {path}")
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return Preview(f"Error reading file: {path} - {e}")

        return Preview(
            f"Will delete file: {path}\nCurrent content:\n{_head(content, self.max_lines)}",
            has_content=True,
            action="delete",
        )

    def _file_edit(self, payload: FileEdit) -> Preview:
        path = payload.file_path
        try:
            current = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return Preview(f"Will revert file: {path}\nError: {e}")

        lines = [f"Will revert file: {path}", ""]
        if payload.original_content is not None:
            lines.extend(_line_diff(current, payload.original_content))
        elif payload.is_multi_edit:
            lines.append("String replacements to be reversed:")
            for number, edit in enumerate(payload.edits, start=1):
                if edit.new_string:
                    lines.append(f'{number}. "{edit.new_string}" -> "{edit.old_string}"')
        elif payload.new_string:
            suffix = " (all occurrences)" if payload.replace_all else ""
            lines.append("String replacement to be reversed:")
            lines.append(f'"{payload.new_string}" -> "{payload.old_string}"{suffix}')
            lines.extend(_context(current, payload.new_string))
        else:
            lines.append("Original content not available.")

        return Preview("\n".join(lines), has_content=True, action="revert")

    def _file_delete(self, payload: FileDelete) -> Preview:
        if payload.content is None:
            return Preview(
                f"Will restore file: {payload.file_path}\n"
                "Content not available; a redo backup is needed."
            )
        return Preview(
            f"Will restore file: {payload.file_path}\n"
            f"Content to restore:\n{_head(payload.content, self.max_lines)}",
            has_content=True,
            action="restore",
        )


def _line_diff(current: str, original: str) -> list[str]:
    """Line-by-line comparison of the first lines of two contents."""
    current_lines = current.split("\n")
    original_lines = original.split("\n")
    total = max(len(current_lines), len(original_lines))

    lines = []
    for index in range(min(total, DIFF_LINES)):
        now = current_lines[index] if index < len(current_lines) else ""
        before = original_lines[index] if index < len(original_lines) else ""
        if now == before:
            if before:
                lines.append(f"  {before}")
            continue
        if now:
            lines.append(f"- {now}")
        if before:
            lines.append(f"+ {before}")

    if total > DIFF_LINES:
        lines.append(f"... ({total - DIFF_LINES} more lines)")
    return lines


def _context(content: str, needle: str) -> list[str]:
    """Lines around the first line containing ``needle``."""
    content_lines = content.split("\n")
    for index, line in enumerate(content_lines):
        if needle in line:
            break
    else:
        return []

    start = max(0, index - CONTEXT_LINES)
    end = min(len(content_lines), index + CONTEXT_LINES + 1)
    lines = ["", "Context:"]
    for i in range(start, end):
        marker = "> " if i == index else "  "
        lines.append(f"{marker}{content_lines[i]}")
    return lines
