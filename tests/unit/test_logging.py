"""
Wouch: Tests for Logging Setup

Test suite for ``wouch.core.logging``. Covers:
- Basic logger configuration
- File and console handlers
- Environment-aware levels and formats
- Namespaced logger retrieval
"""

from __future__ import annotations

import logging
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from wouch.core.config import WouchConfig
from wouch.core.logging import get_logger, resolve_log_level, setup_logging


@pytest.fixture
def clean_root_logger():  # type: ignore[no-untyped-def]
    root_logger = logging.getLogger()
    saved_handlers = list(root_logger.handlers)
    saved_level = root_logger.level
    for handler in saved_handlers:
        root_logger.removeHandler(handler)

    yield root_logger

    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    for handler in saved_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


class TestLogging:
    """Tests for logging configuration and helpers."""

    def test_setup_logging_creates_log_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """setup_logging should create a log file and write messages to it."""

        with TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "test.log"

            # Start from a clean root logger so setup_logging attaches
            # handlers for this test-specific file.
            root_logger = logging.getLogger()
            for handler in list(root_logger.handlers):
                root_logger.removeHandler(handler)

            monkeypatch.setenv("LOG_FILE", str(log_file))
            config = WouchConfig()

            setup_logging(config)
            logger = get_logger("test.logging")

            logger.info("Test log message")
            for handler in root_logger.handlers:
                handler.flush()

            assert log_file.exists()
            content = log_file.read_text()
            assert "Test log message" in content

            for handler in list(root_logger.handlers):
                handler.close()
                root_logger.removeHandler(handler)

    def test_get_logger_returns_namespaced_logger(self) -> None:
        """get_logger should prefix loggers with the 'wouch.' namespace."""

        logger = get_logger("core.test")
        assert logger.name == "wouch.core.test"

    def test_get_logger_keeps_module_names(self) -> None:
        """Module ``__name__`` values are already namespaced."""

        logger = get_logger("wouch.flow.engine")
        assert logger.name == "wouch.flow.engine"

    def test_production_floors_debug_to_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ENVIRONMENT", "production")

        assert resolve_log_level(WouchConfig()) == logging.INFO

    def test_development_keeps_debug(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ENVIRONMENT", "development")

        assert resolve_log_level(WouchConfig()) == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        assert resolve_log_level(WouchConfig()) == logging.INFO

    def test_empty_log_file_logs_to_console_only(
        self, monkeypatch: pytest.MonkeyPatch, clean_root_logger: logging.Logger
    ) -> None:
        monkeypatch.setenv("LOG_FILE", "")

        setup_logging(WouchConfig())

        assert len(clean_root_logger.handlers) == 1
        assert not isinstance(clean_root_logger.handlers[0], logging.FileHandler)

    def test_records_are_tagged_with_environment(
        self, monkeypatch: pytest.MonkeyPatch, clean_root_logger: logging.Logger
    ) -> None:
        with TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "env.log"
            monkeypatch.setenv("LOG_FILE", str(log_file))
            monkeypatch.setenv("ENVIRONMENT", "staging")

            setup_logging(WouchConfig())
            get_logger("flow.test").warning("routed to intervention")
            for handler in clean_root_logger.handlers:
                handler.flush()

            assert " - staging - wouch.flow.test - WARNING - routed to intervention" in log_file.read_text()
            for handler in list(clean_root_logger.handlers):
                handler.close()
                clean_root_logger.removeHandler(handler)
