"""
Logging setup and configuration utilities.

The package logs through loguru and is disabled by default so that an
embedding application decides where output goes. ``setup_logging``
installs the sinks and enables the package logger.
"""

import sys
from pathlib import Path
from typing import List

from loguru import logger

from ..config.models import LoggingConfig

PACKAGE_NAME = "app_compose"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


def setup_logging(config: LoggingConfig) -> List[int]:
    """
    Setup package logging with the given configuration.

    Args:
        config: Logging configuration

    Returns:
        IDs of the loguru sinks that were added
    """
    logger.remove()
    sink_ids: List[int] = []

    if config.console_enabled:
        sink_ids.append(logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=config.level,
            colorize=True,
            backtrace=True,
            diagnose=False
        ))

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        sink_ids.append(logger.add(
            log_dir / "app-compose.log",
            format=FILE_FORMAT,
            level=config.level,
            rotation=config.max_file_size,
            retention=config.retention,
            compression="zip",
            backtrace=True,
            diagnose=False
        ))

    logger.enable(PACKAGE_NAME)
    return sink_ids
