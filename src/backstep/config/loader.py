"""Configuration loader for Backstep.

Implements hierarchical configuration loading and merging.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from backstep.config.models import BackstepConfig
from backstep.config.sources import (
    EnvironmentSource,
    IConfigSource,
    JsonFileSource,
    YamlFileSource,
)
from backstep.core import ConfigError, get_logger

logger = get_logger("config.loader")


class ConfigLoader:
    """Configuration loader with hierarchical merging.

    Load order (later overrides earlier):
    1. Defaults (from BackstepConfig)
    2. User settings (~/.backstep/settings.json or .yaml)
    3. Project settings (./.backstep/settings.json or .yaml)
    4. Environment variables (BACKSTEP_*)
    """

    SETTINGS_STEM = "settings"

    def __init__(
        self,
        user_dir: Path | None = None,
        project_dir: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        """Initialize configuration loader.

        Args:
            user_dir: User configuration directory. Defaults to ~/.backstep
            project_dir: Project configuration directory. Defaults to ./.backstep
            environ: Environment mapping. Defaults to os.environ.
        """
        self._user_dir = user_dir or Path.home() / ".backstep"
        self._project_dir = project_dir or Path.cwd() / ".backstep"
        self._environ = environ

    @property
    def user_dir(self) -> Path:
        """Get user configuration directory."""
        return self._user_dir

    @property
    def project_dir(self) -> Path:
        """Get project configuration directory."""
        return self._project_dir

    def load_all(self) -> BackstepConfig:
        """Load and merge all configuration sources.

        Returns:
            Validated BackstepConfig with all sources merged.

        Raises:
            ConfigError: If the merged configuration does not validate.
        """
        config: dict[str, Any] = BackstepConfig().model_dump()

        for directory in (self._user_dir, self._project_dir):
            source = self._settings_source(directory)
            if source is not None:
                config = self._load_and_merge(config, source)

        config = self._load_and_merge(config, EnvironmentSource(self._environ))

        try:
            return BackstepConfig.model_validate(config)
        except ValidationError as e:
            logger.error("Configuration validation failed: %s", e)
            raise ConfigError(f"Configuration validation failed: {e}") from e

    def _settings_source(self, directory: Path) -> IConfigSource | None:
        """Pick the settings file in a directory, JSON preferred over YAML."""
        json_path = directory / f"{self.SETTINGS_STEM}.json"
        if json_path.exists():
            return JsonFileSource(json_path)
        for suffix in (".yaml", ".yml"):
            yaml_path = directory / f"{self.SETTINGS_STEM}{suffix}"
            if yaml_path.exists():
                return YamlFileSource(yaml_path)
        return None

    def _load_and_merge(
        self,
        base: dict[str, Any],
        source: IConfigSource,
    ) -> dict[str, Any]:
        # A broken user or project file must not prevent undo from running
        try:
            if source.exists():
                override = source.load()
                if override:
                    logger.debug("Loaded config from %s", source)
                    return self.merge(base, override)
        except ConfigError as e:
            logger.warning("Skipped config source %s: %s", source, e)
        except FileNotFoundError:
            logger.debug("Config source %s disappeared before load", source)
        return base

    def merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two configuration dictionaries.

        Args:
            base: Base configuration dictionary.
            override: Override configuration dictionary.

        Returns:
            New dictionary; nested dictionaries are merged recursively and
            other values are replaced by the override.
        """
        result = copy.deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result
