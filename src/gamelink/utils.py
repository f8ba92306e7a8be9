"""
Utility functions for gamelink.
"""

import time
from datetime import datetime


def now_ms() -> int:
    """Wall-clock time in integer milliseconds, the unit used for all connection timestamps."""
    return int(time.time() * 1000)


def format_time_hhmmss(timestamp_ms: int | None) -> str:
    """
    Format a millisecond Unix timestamp as HH:MM:SS.

    Args:
        timestamp_ms: Unix timestamp in milliseconds

    Returns:
        Formatted string like "14:30:45" or "--:--:--" if the timestamp is unset
    """
    if not timestamp_ms:
        return "--:--:--"

    dt = datetime.fromtimestamp(timestamp_ms / 1000)
    return dt.strftime("%H:%M:%S")


def format_duration_ms(duration_ms: int) -> str:
    """Render a millisecond duration as a short human string ("850ms", "4s", "5m")."""
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    seconds = duration_ms / 1000
    if seconds < 60:
        return f"{seconds:.0f}s"
    minutes, rem = divmod(int(seconds), 60)
    return f"{minutes}m" if rem == 0 else f"{minutes}m{rem:02d}s"
