"""
Logging Configuration Module

Provides centralized loguru configuration via LOG_LEVEL environment variable.

Usage:
    from agui_stream_protocol.logging_config import configure_logging
    configure_logging()  # Call once at startup

Environment Variables:
    LOG_LEVEL: Controls console log verbosity (default: INFO)
        - DEBUG: All logs, including per-event stream tracing
        - INFO: Run lifecycle, session resolution, disconnects (default)
        - WARNING: Dropped activities, unparseable tool arguments
        - ERROR: Run failures only

Note:
    - Console (stderr) respects LOG_LEVEL
    - server.py adds a DEBUG file sink for full diagnostics
"""

import os
import sys

from loguru import logger


VALID_LOG_LEVELS: set[str] = {"DEBUG", "INFO", "WARNING", "ERROR"}

DEFAULT_LOG_LEVEL = "INFO"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - {message}"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def get_log_level() -> str:
    """
    Get the configured log level from environment variable.

    Returns:
        str: Log level (DEBUG, INFO, WARNING, or ERROR).
             Falls back to INFO if invalid or not set.
    """
    level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level not in VALID_LOG_LEVELS:
        return DEFAULT_LOG_LEVEL

    return level


def configure_logging() -> None:
    """
    Replace loguru's default handler with a stderr sink honoring LOG_LEVEL.

    Call once at application startup.
    """
    level = get_log_level()

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    logger.debug(f"Logging configured: console level={level}")


def add_file_sink(log_file: str, rotation: str = "100 MB", retention: str = "7 days") -> int:
    """Add a DEBUG-level rotating file sink. Returns the loguru handler id."""
    return logger.add(
        log_file,
        rotation=rotation,
        retention=retention,
        level="DEBUG",
        format=FILE_FORMAT,
    )
