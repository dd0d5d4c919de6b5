"""Configuration package for Backstep."""

from backstep.config.loader import ConfigLoader
from backstep.config.models import (
    BackstepConfig,
    DisplayConfig,
    LogSourceConfig,
    StorageConfig,
)
from backstep.config.sources import (
    EnvironmentSource,
    IConfigSource,
    JsonFileSource,
    YamlFileSource,
)

__all__ = [
    "BackstepConfig",
    "ConfigLoader",
    "DisplayConfig",
    "EnvironmentSource",
    "IConfigSource",
    "JsonFileSource",
    "LogSourceConfig",
    "StorageConfig",
    "YamlFileSource",
]
