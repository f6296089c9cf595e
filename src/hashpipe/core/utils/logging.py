"""
Logging configuration using loguru.

stdout carries piped data, so the console sink always writes to stderr.
Call setup_logging() once at startup, then use ``from loguru import logger``.
"""

import sys

from loguru import logger

_VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")


def level_for_verbosity(verbosity: int) -> str:
    """Map a ``-v`` count to a loguru level name (0 -> WARNING, 2+ -> DEBUG)."""
    index = max(0, min(verbosity, len(_VERBOSITY_LEVELS) - 1))
    return _VERBOSITY_LEVELS[index]


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = "<level>[{level.name}]</level> {message}",
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure loguru with a stderr sink and optional file output.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. If None, only logs to stderr.
        fmt: Loguru format string.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {thread.name} | {message}",
            rotation=rotation,
            retention=retention,
        )
