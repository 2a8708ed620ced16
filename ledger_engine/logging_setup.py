"""
Logging setup.

Configures loguru sinks for the engine: stderr plus a rotating log file.
"""

import sys

from loguru import logger

from ledger_engine.config.settings import settings


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configure logger with file rotation.

    Args:
        level: Minimum level (defaults to LOG_LEVEL)
        log_file: Log file path (defaults to LOG_FILE; empty disables the file sink)
    """
    level = (level or settings.log_level).upper()
    log_file = settings.log_file if log_file is None else log_file

    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )

    logger.info("Ledger engine logging configured", extra={"level": level})
