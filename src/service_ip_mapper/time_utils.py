"""
Time utilities for log event timestamps.
"""

from datetime import datetime
from typing import Optional


def millis_to_datetime(timestamp_millis: int) -> datetime:
    """Convert an epoch-milliseconds timestamp to a local datetime."""
    return datetime.fromtimestamp(timestamp_millis / 1000)


def format_log_date(timestamp_millis: Optional[int]) -> str:
    """
    Format an event timestamp as a local calendar date.

    Uses the unpadded ``YYYY/M/D`` form, e.g. ``2024/3/7``. Returns
    ``"unknown"`` when no timestamp was observed.
    """
    if timestamp_millis is None:
        return "unknown"

    moment = millis_to_datetime(timestamp_millis)
    return f"{moment.year}/{moment.month}/{moment.day}"
