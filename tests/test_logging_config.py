"""Tests for logging setup."""

import logging
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from fresherflow.utils.logging_config import setup_logging


@pytest.fixture
def log_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d
        logger = logging.getLogger("fresherflow")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()


class TestSetupLogging:
    def test_file_and_console_handlers(self, log_dir):
        logger = setup_logging(log_dir)
        kinds = [type(h) for h in logger.handlers]
        assert RotatingFileHandler in kinds
        assert logging.StreamHandler in kinds
        assert (Path(log_dir) / "fresherflow.log").exists()

    def test_console_can_be_disabled(self, log_dir):
        logger = setup_logging(log_dir, console=False)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RotatingFileHandler)

    def test_reinit_does_not_duplicate_handlers(self, log_dir):
        setup_logging(log_dir)
        logger = setup_logging(log_dir)
        assert len(logger.handlers) == 2

    def test_child_loggers_write_to_file(self, log_dir):
        logger = setup_logging(log_dir, console=False)
        logging.getLogger("fresherflow.offline.queue").info("flushed %d actions", 3)
        for handler in logger.handlers:
            handler.flush()
        text = (Path(log_dir) / "fresherflow.log").read_text(encoding="utf-8")
        assert "[INFO] fresherflow.offline.queue: flushed 3 actions" in text

    def test_noisy_libraries_raised_to_warning(self, log_dir):
        setup_logging(log_dir, level=logging.DEBUG, console=False)
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("apscheduler").level == logging.WARNING
