"""Core package containing errors and logging."""

from backstep.core.errors import (
    AlreadyExistsError,
    BackstepError,
    ConfigError,
    ContentUnavailableError,
    LogReadError,
    NotFoundError,
    OperationError,
    OperationIOError,
    ParseError,
    StorageError,
    UnsupportedError,
)
from backstep.core.logging import get_logger, setup_logging

__all__ = [
    "AlreadyExistsError",
    "BackstepError",
    "ConfigError",
    "ContentUnavailableError",
    "LogReadError",
    "NotFoundError",
    "OperationError",
    "OperationIOError",
    "ParseError",
    "StorageError",
    "UnsupportedError",
    "get_logger",
    "setup_logging",
]
