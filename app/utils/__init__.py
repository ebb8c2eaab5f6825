"""Utility functions package."""

from app.utils.logger import setup_logging, get_logger, app_logger
from app.utils.timeutils import now_ms

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    "app_logger",
    # Time
    "now_ms",
]
