"""
Formatting Utilities

Functions for converting between clock strings and minutes and for
formatting durations in log and report text.
"""

import logging
import math
from datetime import datetime

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

# Fixed reference date so parsing never depends on today's date
_CLOCK_DEFAULT = datetime(2000, 1, 1)


def clock_to_minutes(clock: str) -> float:
    """
    Convert an "HH:MM" (or "HH:MM:SS") clock string to minutes after midnight.

    Args:
        clock: Clock time string, e.g. "07:30"

    Returns:
        Minutes after midnight (seconds become fractional minutes)

    Raises:
        ValueError: If the string is not a clock time

    Example:
        >>> clock_to_minutes("07:30")
        450.0
    """
    if not isinstance(clock, str) or ':' not in clock:
        raise ValueError(f"Not a clock time: {clock!r}")
    try:
        parsed = dateutil_parser.parse(clock.strip(), default=_CLOCK_DEFAULT)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Not a clock time: {clock!r}") from e
    if parsed.date() != _CLOCK_DEFAULT.date():
        raise ValueError(f"Clock time must not carry a date: {clock!r}")
    return parsed.hour * 60 + parsed.minute + parsed.second / 60.0


def minutes_to_clock(minutes: float) -> str:
    """
    Convert minutes after midnight to "HH:MM", wrapping past 24h.
    Fractional minutes are rounded to the nearest minute.

    Example:
        >>> minutes_to_clock(450)
        '07:30'
    """
    total = int(round(minutes))
    hours = (total // 60) % 24
    mins = total % 60
    return f"{hours:02d}:{mins:02d}"


def format_duration(minutes: float) -> str:
    """
    Format minutes as "1h 5m", "2h" or "45m".

    Args:
        minutes: Duration in minutes

    Returns:
        Human-readable duration string
    """
    if minutes is None or not math.isfinite(minutes):
        return ""
    hours = int(minutes // 60)
    mins = int(round(minutes % 60))
    if mins == 60:
        hours, mins = hours + 1, 0
    if hours > 0 and mins > 0:
        return f"{hours}h {mins}m"
    if hours > 0:
        return f"{hours}h"
    return f"{mins}m"


def format_percentage(ratio: float, decimals: int = 1) -> str:
    """Format a 0-1 ratio as a percentage string"""
    if ratio is None or not math.isfinite(ratio):
        return "N/A"
    return f"{ratio * 100:.{decimals}f}%"
