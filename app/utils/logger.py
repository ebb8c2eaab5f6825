"""
Logging for the simulator.

All module loggers hang off the "simulator" namespace so one call to
setup_logging() configures the API process, Celery workers and scripts
alike. Console output is always on; the rotating file is optional
(LOG_FILE_PATH="" disables it).
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from app.config.settings import settings

ROOT_LOGGER = "simulator"

CONSOLE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
FILE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FILE_MAX_BYTES = 10 * 1024 * 1024
FILE_BACKUP_COUNT = 5

# HTTP clients log every request at INFO; one poll run makes dozens
NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp", "celery")


def _file_handler(path: str, level: int) -> RotatingFileHandler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=FILE_MAX_BYTES,
        backupCount=FILE_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(level: Optional[str] = None, file_path: Optional[str] = None) -> logging.Logger:
    """
    Configure the "simulator" logger.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL
        file_path: Rotating log file; defaults to settings.LOG_FILE_PATH

    Returns:
        logging.Logger: The namespace root logger
    """
    logger = logging.getLogger(ROOT_LOGGER)

    level_name = (level or (settings.LOG_LEVEL if settings else "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(log_level)

    # Already configured (re-import, Celery fork)
    if logger.handlers:
        return logger

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console)

    if file_path is None:
        file_path = settings.LOG_FILE_PATH if settings else ""
    if file_path:
        try:
            logger.addHandler(_file_handler(file_path, log_level))
        except OSError as e:
            logger.warning(f"File logging disabled, cannot open {file_path}: {str(e)}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, under the "simulator" namespace.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Opened PEPE (So1...) at 0.0012 for $250")
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


# Initialize logging on import
app_logger = setup_logging()
