"""Configuration sources for Backstep.

Each source loads a partial configuration dictionary from one place
(a JSON file, a YAML file, or the environment).
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

import yaml

from backstep.core import ConfigError, get_logger

logger = get_logger("config.sources")


class IConfigSource(ABC):
    """Interface for configuration sources."""

    @abstractmethod
    def load(self) -> dict[str, Any]:
        """Load configuration from source.

        Returns:
            Configuration data, or an empty dict if the source is absent.

        Raises:
            ConfigError: If the source exists but cannot be parsed.
        """
        ...

    @abstractmethod
    def exists(self) -> bool:
        """Check if source exists."""
        ...


class FileSource(IConfigSource):
    """Common behaviour for file-backed sources."""

    format_name: ClassVar[str] = "file"

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Get the file path."""
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> dict[str, Any]:
        if not self.exists():
            return {}

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot read %s: %s", self._path, e)
            raise ConfigError(f"Cannot read {self._path}: {e}") from e

        if not text.strip():
            return {}

        data = self._parse(text)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"{self.format_name} root must be a mapping, got {type(data).__name__}"
            )
        return data

    @abstractmethod
    def _parse(self, text: str) -> Any:
        ...

    def __str__(self) -> str:
        return f"{type(self).__name__}({self._path})"


class JsonFileSource(FileSource):
    """Load configuration from a JSON file."""

    format_name = "JSON"

    def _parse(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s: %s", self._path, e)
            raise ConfigError(f"Invalid JSON in {self._path}: {e}") from e


class YamlFileSource(FileSource):
    """Load configuration from a YAML file."""

    format_name = "YAML"

    def _parse(self, text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            logger.warning("Invalid YAML in %s: %s", self._path, e)
            raise ConfigError(f"Invalid YAML in {self._path}: {e}") from e


class EnvironmentSource(IConfigSource):
    """Load configuration from BACKSTEP_* environment variables.

    - BACKSTEP_HOME -> storage.root_dir
    - BACKSTEP_BACKUP_DIR -> storage.backup_dir
    - BACKSTEP_UNDO_STATE_FILE -> storage.undo_state_file
    - BACKSTEP_SESSIONS_DIR -> storage.sessions_dir
    - BACKSTEP_LOG_DIR -> storage.log_dir
    - BACKSTEP_PROJECTS_DIR -> logs.projects_dir
    - BACKSTEP_COLOR -> display.color
    - BACKSTEP_PREVIEW_LINES -> display.preview_lines
    - BACKSTEP_FILE_LOGGING -> display.file_logging
    """

    MAPPINGS: ClassVar[dict[str, tuple[str, str]]] = {
        "BACKSTEP_HOME": ("storage", "root_dir"),
        "BACKSTEP_BACKUP_DIR": ("storage", "backup_dir"),
        "BACKSTEP_UNDO_STATE_FILE": ("storage", "undo_state_file"),
        "BACKSTEP_SESSIONS_DIR": ("storage", "sessions_dir"),
        "BACKSTEP_LOG_DIR": ("storage", "log_dir"),
        "BACKSTEP_PROJECTS_DIR": ("logs", "projects_dir"),
        "BACKSTEP_COLOR": ("display", "color"),
        "BACKSTEP_PREVIEW_LINES": ("display", "preview_lines"),
        "BACKSTEP_FILE_LOGGING": ("display", "file_logging"),
    }

    BOOLEAN_KEYS: ClassVar[frozenset[str]] = frozenset({"color", "file_logging"})
    INTEGER_KEYS: ClassVar[frozenset[str]] = frozenset({"preview_lines"})

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        """Initialize environment source.

        Args:
            environ: Environment dictionary. Defaults to os.environ.
        """
        self._environ = environ if environ is not None else dict(os.environ)

    def load(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        for env_var, (section, key) in self.MAPPINGS.items():
            value = self._environ.get(env_var)
            if value is None:
                continue
            config.setdefault(section, {})[key] = self._convert_value(key, value)
        return config

    def exists(self) -> bool:
        return True

    def _convert_value(self, key: str, value: str) -> Any:
        if key in self.BOOLEAN_KEYS:
            return value.lower() in ("true", "1", "yes", "on")
        if key in self.INTEGER_KEYS:
            try:
                return int(value)
            except ValueError:
                logger.warning("Invalid integer value for %s: %s", key, value)
        return value

    def __str__(self) -> str:
        return "EnvironmentSource"
