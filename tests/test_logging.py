import logging
from logging.handlers import RotatingFileHandler

import pytest

from config import settings
from services.logger_config import setup_logging


@pytest.fixture
def configured_logger(tmp_path):
    log_file = tmp_path / "logs" / "workbench.log"
    logger = setup_logging(str(log_file))
    yield logger, log_file
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _split_handlers(logger):
    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    console_handlers = [h for h in logger.handlers if not isinstance(h, RotatingFileHandler)]
    return file_handlers, console_handlers


def test_file_and_console_handlers(configured_logger):
    logger, log_file = configured_logger
    file_handlers, console_handlers = _split_handlers(logger)

    assert logger.name == settings.LOGGER_NAME
    assert len(file_handlers) == 1
    assert len(console_handlers) == 1
    assert file_handlers[0].level == logging.getLevelName(settings.LOG_FILE_LEVEL)
    assert console_handlers[0].level == logging.getLevelName(settings.LOG_CONSOLE_LEVEL)
    assert file_handlers[0].maxBytes == 5 * 1024 * 1024
    assert log_file.parent.is_dir()


def test_setup_twice_does_not_duplicate_handlers(configured_logger):
    logger, log_file = configured_logger
    for handler in logger.handlers:
        handler.close()

    setup_logging(str(log_file))

    assert len(logger.handlers) == 2


def test_debug_lines_reach_the_file_only(configured_logger):
    logger, log_file = configured_logger

    logger.debug("chunk boundary detail")
    for handler in logger.handlers:
        handler.flush()

    assert "chunk boundary detail" in log_file.read_text(encoding="utf-8")
    _, console_handlers = _split_handlers(logger)
    assert console_handlers[0].level > logging.DEBUG


def test_httpx_request_lines_quieted(configured_logger):
    assert logging.getLogger("httpx").level == logging.WARNING
