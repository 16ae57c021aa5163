"""Logging setup for Surfaced."""

import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Libraries that log through the standard logging module
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "apscheduler", "httpx", "openai")
# Per-request chatter, only warnings are kept
NOISY_LOGGERS = ("httpx", "openai")


class StdlibToLoguru(logging.Handler):
    """Forward standard logging records to loguru sinks."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, f"[{record.name}] {record.getMessage()}")


def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None):
    """Configure loguru sinks and route library logging into them.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file path, empty string disables file logging
    """
    config = get_config()
    log_level = (log_level or config.logging.level).upper()
    if log_file is None:
        log_file = config.logging.file

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=log_level,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
        )

    handler = StdlibToLoguru()
    for name in ROUTED_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = [handler]
        library_logger.propagate = False
        library_logger.setLevel("WARNING" if name in NOISY_LOGGERS else log_level)

    logger.info(f"Logging initialized at {log_level} level")
