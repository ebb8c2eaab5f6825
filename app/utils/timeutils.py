"""Epoch-millisecond timestamps, the unit used throughout the persisted document."""

import time
from datetime import datetime, timezone


def now_ms() -> int:
    """Current UTC time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_ms(timestamp_ms: int) -> str:
    """Render an epoch-millisecond timestamp as 'YYYY-MM-DD HH:MM:SS'."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S")
