"""Tests for CLI logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from mangarr.cli.config import setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Restore root handlers and level after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_defaults_to_stdout_and_quiets_http_loggers() -> None:
    """Verify the root logger writes to a stream and third-party loggers are pinned."""
    setup_logging("INFO")

    root = logging.getLogger()
    assert root.level == logging.INFO
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logging.getLogger("requests").level == logging.WARNING


def test_setup_logging_uses_rotating_file_and_can_be_reapplied(tmp_path: Path) -> None:
    """Verify a log path selects a rotating file handler and re-setup replaces it."""
    log_path = tmp_path / "logs" / "mangarr.log"

    setup_logging("DEBUG", str(log_path), max_size_mb=1, max_backups=2)
    logging.getLogger("mangarr.test").debug("hello file")

    handler = logging.getLogger().handlers[0]
    assert isinstance(handler, RotatingFileHandler)
    assert handler.maxBytes == 1024 * 1024
    assert handler.backupCount == 2
    handler.flush()
    assert "hello file" in log_path.read_text(encoding="utf-8")

    setup_logging("ERROR")
    assert logging.getLogger().level == logging.ERROR
    assert not isinstance(logging.getLogger().handlers[0], RotatingFileHandler)
