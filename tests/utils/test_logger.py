"""Tests for logging setup helpers."""

import logging

import structlog

from gridmaker.utils.logger import get_logger, log_context, setup_logging


class TestLogContext:
    def test_binds_and_unbinds(self):
        with log_context(strategy_id="grid-1", trigger="fill"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["strategy_id"] == "grid-1"
            assert bound["trigger"] == "fill"
        bound = structlog.contextvars.get_contextvars()
        assert "strategy_id" not in bound
        assert "trigger" not in bound


class TestSetupLogging:
    def test_file_handlers(self, tmp_path):
        setup_logging(log_level="DEBUG", log_dir=tmp_path, log_to_console=False, log_to_file=True)
        try:
            root = logging.getLogger()
            assert root.level == logging.DEBUG
            assert (tmp_path / "gridmaker.log").exists()
            assert (tmp_path / "error.log").exists()
            assert logging.getLogger("websockets").level == logging.WARNING
        finally:
            for handler in logging.getLogger().handlers:
                handler.close()
            logging.getLogger().handlers.clear()
            structlog.reset_defaults()

    def test_get_logger(self):
        logger = get_logger("gridmaker.test")
        assert logger is not None
