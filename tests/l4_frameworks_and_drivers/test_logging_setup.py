"""Tests for setup_file_logging."""

from __future__ import annotations

import logging

import pytest

from segscribe.l4_frameworks_and_drivers.logging_setup import LOG_FILENAME, setup_file_logging


@pytest.fixture(autouse=True)
def _restore_segscribe_logger():
    logger = logging.getLogger('segscribe')
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


class TestSetupFileLogging:
    def test_creates_dir_and_log_file(self, tmp_path):
        log_dir = tmp_path / 'logs'
        path = setup_file_logging(log_dir)
        assert path == log_dir / LOG_FILENAME
        logging.getLogger('segscribe.orchestrator').info('hello from the pipeline')
        assert 'hello from the pipeline' in path.read_text(encoding='utf-8')

    def test_second_call_adds_no_handler(self, tmp_path):
        setup_file_logging(tmp_path)
        count = len(logging.getLogger('segscribe').handlers)
        setup_file_logging(tmp_path)
        assert len(logging.getLogger('segscribe').handlers) == count

    def test_level_applied(self, tmp_path):
        setup_file_logging(tmp_path, level='warning')
        assert logging.getLogger('segscribe').level == logging.WARNING
