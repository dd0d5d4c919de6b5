"""Configuration models for Backstep.

This module defines Pydantic models for every configuration section. Paths
left unset are resolved relative to ``StorageConfig.root_dir``, which is the
only place a home-directory default is applied.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_root_dir() -> Path:
    return Path.home() / ".backstep"


def _default_projects_dir() -> Path:
    return Path.home() / ".claude" / "projects"


class StorageConfig(BaseModel):
    """Persistence locations.

    Attributes:
        root_dir: Base directory for everything Backstep writes.
        backup_dir: Directory for pre-mutation snapshots.
        undo_state_file: JSON file holding undone ids per log.
        sessions_dir: Directory for local session files.
        log_dir: Directory for Backstep's own rotating log file.
    """

    model_config = ConfigDict(validate_assignment=True)

    root_dir: Path = Field(default_factory=_default_root_dir)
    backup_dir: Path | None = None
    undo_state_file: Path | None = None
    sessions_dir: Path | None = None
    log_dir: Path | None = None

    @field_validator("root_dir", "backup_dir", "undo_state_file", "sessions_dir", "log_dir")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        """Expand a leading ~ in configured paths."""
        if v is None:
            return v
        return Path(v).expanduser()

    def resolved_backup_dir(self) -> Path:
        """Backup directory, defaulting under the root."""
        return self.backup_dir or self.root_dir / "backups"

    def resolved_undo_state_file(self) -> Path:
        """Undo-state file, defaulting under the root."""
        return self.undo_state_file or self.root_dir / "undone-operations.json"

    def resolved_sessions_dir(self) -> Path:
        """Local sessions directory, defaulting under the root."""
        return self.sessions_dir or self.root_dir / "sessions"

    def resolved_log_dir(self) -> Path:
        """Log directory, defaulting under the root."""
        return self.log_dir or self.root_dir / "logs"


class LogSourceConfig(BaseModel):
    """Where recorded activity logs are found.

    Attributes:
        projects_dir: Directory holding one folder per project, each with
            ``*.jsonl`` session logs.
    """

    model_config = ConfigDict(validate_assignment=True)

    projects_dir: Path = Field(default_factory=_default_projects_dir)

    @field_validator("projects_dir")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        """Expand a leading ~ in the projects directory."""
        return Path(v).expanduser()


class DisplayConfig(BaseModel):
    """Display preferences.

    Attributes:
        color: Enable colored output (can be overridden by --no-color).
        preview_lines: Lines of file content shown in previews (1-50).
        file_logging: Write Backstep's own log file.
    """

    model_config = ConfigDict(validate_assignment=True)

    color: bool = True
    preview_lines: int = Field(default=5, ge=1, le=50)
    file_logging: bool = True


class BackstepConfig(BaseModel):
    """Root configuration model.

    Attributes:
        storage: Persistence locations.
        logs: Activity log discovery settings.
        display: Display preferences.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logs: LogSourceConfig = Field(default_factory=LogSourceConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
