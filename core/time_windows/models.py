"""
Production Timeline Models

Immutable value records for the channel hierarchy:
- TimeInterval: a half-open [start, end) span in minutes
- Channel: an activity or exclusion (cutoff) sub-channel holding intervals
- HeadChannel: the reference timeline owning its sub-channels and downtime items

Records are snapshots. Editing means building a new record, never mutating one.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeInterval:
    """
    A single half-open time span [start, end) in minutes relative to the head start.

    Zero or negative length spans are not representable; use make_intervals()
    to build intervals from raw pairs and silently drop the invalid ones.
    """
    start: float
    end: float

    def __post_init__(self):
        """Validate interval bounds"""
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise ValueError(f"Interval bounds must be finite, got ({self.start}, {self.end})")
        if self.end <= self.start:
            raise ValueError(
                f"End ({self.end}) must be after start ({self.start})"
            )

    @property
    def duration(self) -> float:
        """Interval length in minutes"""
        return self.end - self.start

    def overlaps_with(self, other: 'TimeInterval') -> bool:
        """Check if this interval overlaps another (touching endpoints do not overlap)"""
        return not (self.end <= other.start or self.start >= other.end)

    def __repr__(self) -> str:
        return f"TimeInterval({self.start:g} → {self.end:g})"


def coerce_interval(value) -> Optional[TimeInterval]:
    """
    Convert a TimeInterval or (start, end) pair into a TimeInterval.

    Returns:
        TimeInterval, or None when the pair is non-numeric, non-finite,
        or has zero/negative length
    """
    if isinstance(value, TimeInterval):
        return value
    try:
        start, end = value
        start = float(start)
        end = float(end)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(start) and math.isfinite(end)) or end <= start:
        return None
    return TimeInterval(start, end)


def make_intervals(pairs: Iterable) -> Tuple[TimeInterval, ...]:
    """
    Build intervals from raw pairs, discarding invalid ones.

    Args:
        pairs: Iterable of TimeInterval objects or (start, end) pairs

    Returns:
        Tuple of valid TimeInterval objects in input order

    Example:
        >>> make_intervals([(0, 5), (7, 7), (3, 1)])
        (TimeInterval(0 → 5),)
    """
    intervals = []
    dropped = 0
    for pair in pairs:
        interval = coerce_interval(pair)
        if interval is None:
            dropped += 1
            continue
        intervals.append(interval)
    if dropped:
        logger.debug(f"Discarded {dropped} zero-length or invalid interval(s)")
    return tuple(intervals)


@dataclass(frozen=True)
class Channel:
    """
    Sub-channel of a head.

    Activity channels record when work happened. Exclusion (cutoff) channels
    record non-operational time that is sliced out of every activity channel
    under the same head. Intervals inside one channel may overlap freely.
    """
    name: str
    intervals: Tuple[TimeInterval, ...] = ()
    is_exclusion: bool = False

    def __post_init__(self):
        object.__setattr__(self, "intervals", make_intervals(self.intervals))

    @property
    def interval_count(self) -> int:
        return len(self.intervals)


@dataclass(frozen=True)
class DowntimeItem:
    """Categorized downtime span recorded against a head (minutes)."""
    category: str
    start: float
    end: float

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass(frozen=True)
class HeadChannel:
    """
    Head (reference) channel.

    total_duration bounds the intended interval domain [0, total_duration].
    Endpoints outside that range are accepted; see find_out_of_bounds().
    """
    name: str
    total_duration: float
    channels: Tuple[Channel, ...] = ()
    downtime_items: Tuple[DowntimeItem, ...] = field(default=())

    def __post_init__(self):
        object.__setattr__(self, "channels", tuple(self.channels))
        object.__setattr__(self, "downtime_items", tuple(self.downtime_items))

    @property
    def activity_channels(self) -> List[Channel]:
        """Non-exclusion sub-channels"""
        return [c for c in self.channels if not c.is_exclusion]

    @property
    def exclusion_channels(self) -> List[Channel]:
        """Exclusion (cutoff) sub-channels"""
        return [c for c in self.channels if c.is_exclusion]

    def exclusion_intervals(self) -> List[TimeInterval]:
        """All exclusion intervals under this head, unmerged, in channel order"""
        return [i for c in self.exclusion_channels for i in c.intervals]

    def __repr__(self) -> str:
        return (
            f"HeadChannel(name={self.name!r}, total={self.total_duration:g}m, "
            f"channels={len(self.channels)}, downtime_items={len(self.downtime_items)})"
        )


def build_head(
    name: str,
    total_duration: float,
    channels: Sequence[Tuple[str, Iterable, bool]] = (),
    downtime_items: Sequence[Tuple[str, float, float]] = ()
) -> HeadChannel:
    """
    Convenience builder from plain tuples.

    Args:
        name: Head name
        total_duration: Head duration in minutes
        channels: (name, [(start, end), ...], is_exclusion) tuples
        downtime_items: (category, start, end) tuples

    Returns:
        HeadChannel snapshot

    Example:
        >>> head = build_head("Head 1", 480, [
        ...     ("Weld", [(0, 200), (150, 300)], False),
        ...     ("Break", [(100, 120)], True),
        ... ])
    """
    return HeadChannel(
        name=name,
        total_duration=float(total_duration),
        channels=tuple(
            Channel(name=c_name, intervals=tuple(pairs), is_exclusion=bool(excl))
            for c_name, pairs, excl in channels
        ),
        downtime_items=tuple(DowntimeItem(cat, float(s), float(e)) for cat, s, e in downtime_items),
    )
