"""Tests for configuration models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from backstep.config.models import (
    BackstepConfig,
    DisplayConfig,
    LogSourceConfig,
    StorageConfig,
)


class TestStorageConfig:
    """Tests for StorageConfig."""

    def test_defaults_under_home(self) -> None:
        """Test the default root is ~/.backstep."""
        assert StorageConfig().root_dir == Path.home() / ".backstep"

    def test_resolved_paths_follow_root(self, tmp_path: Path) -> None:
        """Test unset paths are derived from the root."""
        config = StorageConfig(root_dir=tmp_path)

        assert config.resolved_backup_dir() == tmp_path / "backups"
        assert config.resolved_undo_state_file() == tmp_path / "undone-operations.json"
        assert config.resolved_sessions_dir() == tmp_path / "sessions"
        assert config.resolved_log_dir() == tmp_path / "logs"

    def test_explicit_paths_win(self, tmp_path: Path) -> None:
        """Test explicitly set paths are used as given."""
        config = StorageConfig(root_dir=tmp_path, backup_dir=tmp_path / "elsewhere")

        assert config.resolved_backup_dir() == tmp_path / "elsewhere"

    def test_tilde_expanded(self) -> None:
        """Test a leading ~ is expanded."""
        config = StorageConfig(root_dir="~/custom", sessions_dir="~/s")

        assert config.root_dir == Path.home() / "custom"
        assert config.sessions_dir == Path.home() / "s"


class TestLogSourceConfig:
    """Tests for LogSourceConfig."""

    def test_default_projects_dir(self) -> None:
        """Test the default projects directory."""
        assert LogSourceConfig().projects_dir == Path.home() / ".claude" / "projects"


class TestDisplayConfig:
    """Tests for DisplayConfig."""

    def test_defaults(self) -> None:
        """Test default display values."""
        config = DisplayConfig()
        assert config.color is True
        assert config.preview_lines == 5
        assert config.file_logging is True

    @pytest.mark.parametrize("lines", [0, 51])
    def test_preview_lines_bounds(self, lines: int) -> None:
        """Test preview line counts outside 1-50 are rejected."""
        with pytest.raises(ValidationError):
            DisplayConfig(preview_lines=lines)

    def test_validate_assignment(self) -> None:
        """Test assignments are validated."""
        config = DisplayConfig()
        with pytest.raises(ValidationError):
            config.preview_lines = 100


class TestBackstepConfig:
    """Tests for BackstepConfig."""

    def test_sections_present(self) -> None:
        """Test every section has defaults."""
        config = BackstepConfig()
        assert isinstance(config.storage, StorageConfig)
        assert isinstance(config.logs, LogSourceConfig)
        assert isinstance(config.display, DisplayConfig)

    def test_unknown_keys_ignored(self) -> None:
        """Test unknown top-level keys are dropped."""
        config = BackstepConfig.model_validate({"model": {"default": "x"}})
        assert not hasattr(config, "model")

    def test_dump_and_validate(self, tmp_path: Path) -> None:
        """Test a dumped config validates back to an equal config."""
        config = BackstepConfig.model_validate({"storage": {"root_dir": str(tmp_path)}})

        assert BackstepConfig.model_validate(config.model_dump()) == config
