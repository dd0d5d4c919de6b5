"""Tests for logging infrastructure."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from rich.logging import RichHandler

from backstep.core.logging import (
    ROOT_LOGGER_NAME,
    get_log_level_from_env,
    get_logger,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def teardown_method(self) -> None:
        """Clean up logging handlers after each test."""
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.WARNING)

    def test_root_logger_is_debug(self) -> None:
        """Test the tree root always passes DEBUG to its handlers."""
        setup_logging(level=logging.ERROR)

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_rich_console_handler(self) -> None:
        """Test the console handler is a RichHandler at the given level."""
        setup_logging(level=logging.INFO)

        handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RichHandler)
        assert handlers[0].level == logging.INFO

    def test_plain_console_handler(self) -> None:
        """Test rich formatting can be disabled."""
        setup_logging(rich_console=False)

        handler = logging.getLogger(ROOT_LOGGER_NAME).handlers[0]
        assert type(handler) is logging.StreamHandler

    def test_file_handler(self, tmp_path: Path) -> None:
        """Test a rotating file log records debug messages."""
        log_dir = tmp_path / "logs"
        setup_logging(level=logging.ERROR, log_dir=log_dir, console_output=False)

        get_logger("test").debug("recorded")
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()

        handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
        assert [type(h) for h in handlers] == [RotatingFileHandler]
        assert "recorded" in (log_dir / "backstep.log").read_text()

    def test_repeated_setup_does_not_duplicate(self) -> None:
        """Test calling setup twice replaces handlers."""
        setup_logging()
        setup_logging()

        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1


class TestLogLevelFromEnv:
    """Tests for get_log_level_from_env."""

    def test_default_warning(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test WARNING when unset."""
        monkeypatch.delenv("BACKSTEP_LOG_LEVEL", raising=False)
        assert get_log_level_from_env() == logging.WARNING

    def test_case_insensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test level names are case-insensitive."""
        monkeypatch.setenv("BACKSTEP_LOG_LEVEL", "debug")
        assert get_log_level_from_env() == logging.DEBUG

    def test_invalid_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an unknown name falls back to WARNING."""
        monkeypatch.setenv("BACKSTEP_LOG_LEVEL", "chatty")
        assert get_log_level_from_env() == logging.WARNING


class TestGetLogger:
    """Tests for get_logger."""

    def test_prefixed_name(self) -> None:
        """Test loggers live under the Backstep tree."""
        assert get_logger("undo.engine").name == "Backstep.undo.engine"
