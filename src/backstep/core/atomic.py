"""Atomic file writes."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_bytes(path: Path, data: bytes, mode: int | None = 0o600) -> None:
    """Write bytes to ``path`` via a temp file and rename.

    Args:
        path: Target file. Its parent directory must exist.
        data: Content to write.
        mode: Permissions applied after the rename, or None to leave them.

    Raises:
        OSError: If the temp file cannot be written or renamed.
    """
    fd, temp_path = tempfile.mkstemp(suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        # Rename temp file to target (atomic on POSIX)
        Path(temp_path).replace(path)
    except BaseException:
        with contextlib.suppress(OSError):
            Path(temp_path).unlink()
        raise

    if mode is not None:
        with contextlib.suppress(OSError):
            path.chmod(mode)


def atomic_write_json(path: Path, data: Any) -> None:
    """Serialize ``data`` as indented JSON and write it atomically."""
    text = json.dumps(data, indent=2, ensure_ascii=False)
    atomic_write_bytes(path, text.encode("utf-8"))
