# services/logger_config.py
import logging
from logging.handlers import RotatingFileHandler
import os
from typing import Optional
from config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


def setup_logging(log_file_path: Optional[str] = None) -> logging.Logger:
    """
    Configure the workbench logger: a rotating log file plus the console.

    Levels come from LOG_FILE_LEVEL and LOG_CONSOLE_LEVEL. httpx request
    lines are raised to WARNING so streamed completions do not flood the log.
    """
    logger = logging.getLogger(settings.LOGGER_NAME)
    if logger.hasHandlers():
        logger.handlers.clear()
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT)
    log_file_path = log_file_path or settings.LOG_FILE_PATH

    try:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(settings.LOG_FILE_LEVEL.upper())
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Error setting up file logger: {e}")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(settings.LOG_CONSOLE_LEVEL.upper())
    logger.addHandler(console_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info(f"Logging to {log_file_path} (file: {settings.LOG_FILE_LEVEL}, console: {settings.LOG_CONSOLE_LEVEL})")
    return logger
