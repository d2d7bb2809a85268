"""
Logging utilities for Fridge Cookbook.

All module loggers hang off the "fridge_cookbook" logger, so one call to
setup_logging() configures the whole package. Pure core modules only log at
DEBUG; the storage, fridge and import services log their state changes at
INFO and failures at WARNING/ERROR.
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional

from .config import get_config


ROOT_LOGGER_NAME = "fridge_cookbook"

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s'

# Libraries that are chatty at INFO while fetching pages or calling the AI endpoint
QUIET_LOGGERS = ("requests", "urllib3", "charset_normalizer")


def _level(name: str) -> int:
    return getattr(logging, (name or 'INFO').upper(), logging.INFO)


def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None,
                  console: bool = True) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Uses config if not provided.
        log_file: Rotating log file path. Uses config if not provided; an
            empty string disables file output.
        console: Also log INFO and above to stdout

    Returns:
        The package root logger

    Calling it again replaces the handlers of the previous call.
    """
    config = get_config()
    level_name = log_level or config.log_level
    log_file = config.log_file if log_file is None else log_file

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(_level(level_name))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
        console_handler.setLevel(max(logging.INFO, _level(level_name)))
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        file_handler.setLevel(_level(level_name))
        logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging initialized - Level: {level_name}, File: {log_file or 'none'}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the package namespace (pass __name__)"""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class ContextLogger:
    """
    Times an operation and logs its start and outcome.

    Messages logged through the context are prefixed with the operation
    name. Exceptions are logged and propagate.
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.log(self.level, f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.log(self.level, f"Completed: {self.operation} ({self.duration:.2f}s)")
        else:
            self.logger.error(f"Failed: {self.operation} ({self.duration:.2f}s) - {exc_val}")
        return False

    def info(self, message: str):
        self.logger.info(f"[{self.operation}] {message}")

    def warning(self, message: str):
        self.logger.warning(f"[{self.operation}] {message}")


def log_operation(logger: logging.Logger, operation: str, level: int = logging.INFO) -> ContextLogger:
    """Create a context logger for an operation"""
    return ContextLogger(logger, operation, level)
