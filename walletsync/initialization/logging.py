"""
Initialization - Logging Module.

Module: logging.py
Configures loguru logger for walletsync.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[service]}</cyan> | "
    "<level>{message}</level>"
)


def setup_logging(level: str = "INFO", log_file: str | None = "logs/walletsync.log") -> None:
    """
    Configure logger with stderr output and file rotation.

    Args:
        level: Minimum log level
        log_file: Rotating log file path, None to log to stderr only
    """
    logger.remove()
    logger.configure(extra={"service": "walletsync"})
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            format=LOG_FORMAT,
            encoding="utf-8",
        )
