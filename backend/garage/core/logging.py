"""Loguru sinks for the API process."""
import sys
from typing import Optional

from loguru import logger

from garage.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Console sink always; rotating file sink when a log file is configured.

    Arguments default to LOG_LEVEL / LOG_FILE from settings. An empty
    LOG_FILE keeps everything on stderr.
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_file = settings.LOG_FILE if log_file is None else log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)
    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )
    logger.debug(f"logging configured: level={level}, file={log_file or '-'}")
