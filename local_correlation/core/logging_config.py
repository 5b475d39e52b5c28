"""Logging setup shared by the engine and the CLI."""

import logging
from pathlib import Path
from typing import Optional

from local_correlation.core.constants import LOG_FORMAT, LOG_DATE_FORMAT

PACKAGE_LOGGER_NAME = "local_correlation"


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Replaces any handlers installed by a previous call so repeated CLI
    invocations in one process do not duplicate output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a log file to write alongside stderr

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package namespace.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger instance
    """
    if name == PACKAGE_LOGGER_NAME or name.startswith(PACKAGE_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER_NAME}.{name}")
