"""
Stopwatch Mark Conversion

Turns start/pause marks recorded by a running stopwatch into the minute
intervals the rest of the engine consumes.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .models import Channel, HeadChannel, TimeInterval

logger = logging.getLogger(__name__)

START = "start"
PAUSE = "pause"

MS_PER_MINUTE = 60000.0


@dataclass(frozen=True)
class SubChannelMark:
    """A start or pause event, timed relative to the head channel in milliseconds."""
    action: str
    head_time_ms: float

    def __post_init__(self):
        if self.action not in (START, PAUSE):
            raise ValueError(f"Unknown mark action: '{self.action}'. Valid options: '{START}', '{PAUSE}'")


def intervals_from_marks(
    marks: Sequence[SubChannelMark],
    running: bool,
    head_elapsed_ms: float
) -> List[Tuple[float, float]]:
    """
    Pair start/pause marks into (start_ms, end_ms) spans.

    A pause without a preceding start is ignored. A trailing start on a
    channel that is still running closes at the head's elapsed time.
    Empty spans are dropped.
    """
    spans = []
    start_ms = None

    for mark in marks:
        if mark.action == START:
            start_ms = mark.head_time_ms
        elif start_ms is not None:
            if mark.head_time_ms > start_ms:
                spans.append((start_ms, mark.head_time_ms))
            start_ms = None

    if running and start_ms is not None and head_elapsed_ms > start_ms:
        spans.append((start_ms, head_elapsed_ms))

    return spans


def _to_minutes(ms: float) -> float:
    return round(ms / MS_PER_MINUTE, 2)


def head_from_stopwatch(
    name: str,
    head_elapsed_ms: float,
    sub_channels: Sequence[Tuple[str, Sequence[SubChannelMark], bool]]
) -> HeadChannel:
    """
    Build a HeadChannel snapshot from stopwatch state.

    Minutes keep two decimals; every interval is at least 0.01 min long.
    The head total is the elapsed time rounded up to whole minutes (minimum 1)
    so every interval fits. Sub-channels without intervals are left out.

    Args:
        name: Head channel name
        head_elapsed_ms: Elapsed head time in milliseconds
        sub_channels: (name, marks, running) tuples

    Returns:
        HeadChannel with activity channels only
    """
    total_minutes = max(1, math.ceil(head_elapsed_ms / MS_PER_MINUTE))

    channels = []
    for sub_name, marks, running in sub_channels:
        intervals = []
        for start_ms, end_ms in intervals_from_marks(marks, running, head_elapsed_ms):
            start_min = _to_minutes(start_ms)
            end_min = max(round(start_min + 0.01, 2), _to_minutes(end_ms))
            intervals.append(TimeInterval(start_min, end_min))
        if intervals:
            channels.append(Channel(name=sub_name, intervals=tuple(intervals)))
        else:
            logger.debug(f"Stopwatch sub-channel '{sub_name}' has no closed intervals, skipped")

    return HeadChannel(name=name, total_duration=float(total_minutes), channels=tuple(channels))
