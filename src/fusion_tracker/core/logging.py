"""Logging configuration and utilities."""

import logging
import sys
from pathlib import Path

from fusion_tracker.core.config import LoggingSettings

ROOT_LOGGER = "fusion_tracker"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure logging for the fusion_tracker package.

    The tracker cycle runs on its own thread, so the thread name is part of
    every record.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL); LOG_LEVEL if None
        log_file: Optional path to log file; LOG_FILE if None
    """
    if level is None or log_file is None:
        defaults = LoggingSettings()
        level = level or defaults.level
        log_file = log_file or defaults.file

    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    package_logger = logging.getLogger(ROOT_LOGGER)
    package_logger.setLevel(log_level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the fusion_tracker namespace.

    Args:
        name: Module name (typically __name__)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
