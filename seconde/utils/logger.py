"""Logging setup for the Seconde discovery backend.

Handlers are attached once to the ``seconde`` package logger: a colored
console handler and a rotating file handler. Module loggers obtained with
``get_logger(__name__)`` carry no handlers of their own and propagate to it.

Example:
    >>> logger = get_logger(__name__)
    >>> with log_execution_time(logger, "similarity scan"):
    ...     scan()
"""

import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import colorlog

PACKAGE_LOGGER = "seconde"

CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

# Rotate at 10MB, keep 5 files
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _level(name: Optional[str]) -> int:
    name = (name or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    return getattr(logging, name, logging.INFO)


def _log_dir(log_dir: Optional[Path]) -> Path:
    if log_dir is not None:
        return Path(log_dir)
    env_dir = os.environ.get('SECONDE_LOG_DIR')
    if env_dir:
        return Path(env_dir)
    return Path(__file__).parent.parent.parent / "logs"


def configure_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """(Re)build the package logger's handlers.

    Args:
        level: Log level name; LOG_LEVEL env var or INFO when None
        log_dir: Directory for seconde.log; SECONDE_LOG_DIR env var or logs/ when None

    Returns:
        The package logger
    """
    root = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    log_level = _level(level)
    root.setLevel(log_level)
    root.propagate = False

    console = logging.StreamHandler()
    console.setFormatter(colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LOG_COLORS))
    root.addHandler(console)

    directory = _log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        directory / "seconde.log", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding='utf-8'
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(file_handler)

    for handler in root.handlers:
        handler.setLevel(log_level)
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, configuring the package logger on first use."""
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        configure_logging()
    return logging.getLogger(name)


def set_log_level(level: str) -> None:
    """Change the level of the package logger and its handlers."""
    log_level = _level(level)
    root = logging.getLogger(PACKAGE_LOGGER)
    root.setLevel(log_level)
    for handler in root.handlers:
        handler.setLevel(log_level)
    root.debug(f"Log level changed to {logging.getLevelName(log_level)}")


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str):
    """Log at DEBUG how long the wrapped block took."""
    logger.debug(f"Starting: {operation}")
    start_time = time.time()

    try:
        yield
    finally:
        logger.debug(f"Completed: {operation} in {time.time() - start_time:.3f}s")


def log_exception(logger: logging.Logger, operation: str, exception: Exception) -> None:
    """Log a failed operation with its traceback."""
    logger.error(f"Failed: {operation} ({type(exception).__name__}: {exception})", exc_info=True)
