"""Тесты setup_logger."""

import logging
import uuid

from empire_engine.utils import setup_logger


def _unique_name():
    return f"empire_engine.test.{uuid.uuid4().hex[:8]}"


class TestSetupLogger:
    """Настройка logger."""

    def test_console_only_by_default(self):
        logger = setup_logger(_unique_name())
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_idempotent(self):
        name = _unique_name()
        first = setup_logger(name, "DEBUG")
        second = setup_logger(name, "ERROR")

        assert first is second
        assert len(second.handlers) == 1
        assert second.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logger(_unique_name(), "LOUD").level == logging.INFO

    def test_file_handler(self, tmp_path):
        name = _unique_name()
        logger = setup_logger(name, "INFO", log_dir=tmp_path / "logs")
        logger.info("scheduler started")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "scheduler started" in (tmp_path / "logs" / f"{name}.log").read_text(encoding="utf-8")

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
