"""Exception hierarchy for Backstep.

Fatal errors (storage, log access, configuration) propagate to the caller.
Operation errors are raised by the per-kind handlers and converted into
per-record results by the engines, so they never abort a cascade.
"""

from __future__ import annotations


class BackstepError(Exception):
    """Base class for all Backstep errors."""


class ConfigError(BackstepError):
    """Configuration could not be loaded or validated."""


class StorageError(BackstepError):
    """A persistence location could not be created, read or written."""


class LogReadError(BackstepError):
    """The activity log itself cannot be opened."""


class ParseError(BackstepError):
    """A single log line could not be interpreted."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        """Initialize parse error.

        Args:
            message: Description of the problem.
            line_number: 1-based line number in the log, if known.
        """
        super().__init__(message)
        self.line_number = line_number


class OperationError(BackstepError):
    """Base class for failures reported per record."""

    code = "error"


class NotFoundError(OperationError):
    """An expected substring, path or record is absent."""

    code = "not_found"


class AlreadyExistsError(OperationError):
    """A create or rename target already exists."""

    code = "already_exists"


class ContentUnavailableError(OperationError):
    """There is no content to restore from."""

    code = "content_unavailable"


class UnsupportedError(OperationError):
    """The operation cannot be reversed or reapplied automatically."""

    code = "unsupported"


class OperationIOError(OperationError):
    """Underlying filesystem fault.

    Attributes:
        cause: The native OSError that triggered this error.
    """

    code = "io_error"

    def __init__(self, message: str, cause: OSError | None = None) -> None:
        super().__init__(message)
        self.cause = cause
