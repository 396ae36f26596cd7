"""
Duration Aggregation

Applies the interval algebra across the channel hierarchy
(head → activity sub-channels → exclusion sub-channels) and produces the
raw / merged / net duration figures used by KPI calculations and reports.

- raw:    Σ(end - start) per interval, overlaps counted repeatedly
- merged: duration of the merged intervals, overlaps counted once
- net:    merged intervals minus the head's merged exclusions
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from core.time_windows.algebra import (
    find_out_of_bounds,
    merge_intervals,
    raw_duration,
    subtract_intervals,
    total_duration,
)
from core.time_windows.models import Channel, HeadChannel, TimeInterval

logger = logging.getLogger(__name__)

DURATION_COLUMNS = [
    'head', 'channel', 'is_exclusion', 'interval_count',
    'raw_minutes', 'merged_minutes', 'net_minutes', 'status'
]


@dataclass(frozen=True)
class ChannelDurations:
    """Duration triple for one sub-channel (minutes)"""
    name: str
    is_exclusion: bool
    interval_count: int
    raw: float
    merged: float
    net: float
    merged_intervals: tuple = ()
    net_intervals: tuple = ()

    @property
    def status(self) -> str:
        """'Cut' when exclusions or overlap removed time, 'Full' otherwise"""
        return 'Cut' if self.net < self.raw else 'Full'


@dataclass(frozen=True)
class HeadDurations:
    """
    Aggregated durations for one head.

    raw_total / merged_total / net_total sum the activity channels.
    actual_total merges every channel's net segments, so time covered by two
    sub-channels at once is counted a single time.
    running_duration is derived from the head's own total_duration, not from
    sub-channel activity.
    """
    name: str
    total_duration: float
    channels: tuple
    raw_total: float
    merged_total: float
    net_total: float
    actual_total: float
    exclusion_duration: float
    running_duration: float
    downtime: float
    out_of_bounds_count: int = 0

    @property
    def overlap_minutes(self) -> float:
        """Time counted by more than one activity channel after exclusions"""
        return max(0.0, self.net_total - self.actual_total)


@dataclass(frozen=True)
class ProductionDurations:
    """
    Per-head averages across parallel heads.

    Heads run side by side, so elapsed time is averaged. Downtime is
    the total across heads.
    """
    heads: tuple
    heads_count: int
    actual_raw_time: float
    actual_net_time: float
    planned_time: float
    downtime: float


def channel_durations(
    channel: Channel,
    merged_exclusions: Sequence[TimeInterval] = ()
) -> ChannelDurations:
    """
    Compute the raw / merged / net triple for a single channel.

    Args:
        channel: Activity or exclusion channel
        merged_exclusions: Merged exclusion intervals of the owning head

    Returns:
        ChannelDurations. For an exclusion channel net equals merged: cutoffs
        are not sliced out of themselves.

    Example:
        >>> ch = Channel("Weld", ((0, 200), (150, 300)))
        >>> d = channel_durations(ch, merge_intervals([(100, 120)]))
        >>> (d.raw, d.merged, d.net)
        (350.0, 300.0, 280.0)
    """
    merged = merge_intervals(channel.intervals)
    if channel.is_exclusion:
        net_segments = merged
    else:
        net_segments = subtract_intervals(merged, merged_exclusions)

    return ChannelDurations(
        name=channel.name,
        is_exclusion=channel.is_exclusion,
        interval_count=channel.interval_count,
        raw=raw_duration(channel.intervals),
        merged=total_duration(merged),
        net=total_duration(net_segments),
        merged_intervals=tuple(merged),
        net_intervals=tuple(net_segments),
    )


def head_durations(head: HeadChannel) -> HeadDurations:
    """
    Aggregate durations for a head and all of its sub-channels.

    Args:
        head: HeadChannel snapshot

    Returns:
        HeadDurations with per-channel triples in channel order

    Edge Cases:
    - No activity channels: all activity totals are 0
    - Exclusions longer than the head: exclusion duration is capped at
      total_duration so running_duration never goes negative
    - Endpoints outside [0, total_duration]: counted as-is and logged
    """
    merged_exclusions = merge_intervals(head.exclusion_intervals())

    per_channel = [channel_durations(c, merged_exclusions) for c in head.channels]
    activity = [d for d in per_channel if not d.is_exclusion]

    all_net_segments = [seg for d in activity for seg in d.net_intervals]
    actual_total = total_duration(merge_intervals(all_net_segments))

    head_total = max(0.0, float(head.total_duration))
    exclusion_duration = min(total_duration(merged_exclusions), head_total)
    running_duration = max(0.0, head_total - exclusion_duration)

    out_of_bounds = find_out_of_bounds(
        [i for c in head.channels for i in c.intervals], head_total
    )
    if out_of_bounds:
        logger.warning(
            f"Head '{head.name}': {len(out_of_bounds)} interval(s) outside "
            f"[0, {head_total:g}] min, counted as-is: {out_of_bounds[:5]}"
        )

    downtime = float(sum(item.duration for item in head.downtime_items))

    logger.debug(
        f"Head '{head.name}': raw={sum(d.raw for d in activity):.2f} "
        f"net={sum(d.net for d in activity):.2f} actual={actual_total:.2f} "
        f"running={running_duration:.2f} cutoff={exclusion_duration:.2f}"
    )

    return HeadDurations(
        name=head.name,
        total_duration=head_total,
        channels=tuple(per_channel),
        raw_total=float(sum(d.raw for d in activity)),
        merged_total=float(sum(d.merged for d in activity)),
        net_total=float(sum(d.net for d in activity)),
        actual_total=actual_total,
        exclusion_duration=exclusion_duration,
        running_duration=running_duration,
        downtime=downtime,
        out_of_bounds_count=len(out_of_bounds),
    )


def aggregate_production(
    heads: Sequence[HeadChannel],
    planned_time: Optional[float] = None,
    downtime: Optional[float] = None
) -> ProductionDurations:
    """
    Aggregate a production made of parallel heads.

    Args:
        heads: HeadChannel snapshots
        planned_time: Planned schedule time override (minutes). Defaults to the
            average head total duration
        downtime: Downtime override (minutes). Defaults to the sum of every
            head's downtime items

    Returns:
        ProductionDurations with averaged raw/net elapsed time
    """
    summaries = [head_durations(h) for h in heads]
    divisor = max(1, len(summaries))

    actual_raw = sum(s.total_duration for s in summaries) / divisor
    actual_net = sum(s.running_duration for s in summaries) / divisor
    total_downtime = sum(s.downtime for s in summaries) if downtime is None else float(downtime)

    return ProductionDurations(
        heads=tuple(summaries),
        heads_count=len(summaries),
        actual_raw_time=actual_raw,
        actual_net_time=actual_net,
        planned_time=actual_raw if planned_time is None else float(planned_time),
        downtime=total_downtime,
    )


def durations_dataframe(heads: Sequence[HeadChannel]) -> pd.DataFrame:
    """
    Tabulate per-channel durations for every head.

    Returns:
        DataFrame with DURATION_COLUMNS, one row per sub-channel
    """
    rows: List[dict] = []
    for head in heads:
        summary = head_durations(head)
        for d in summary.channels:
            rows.append({
                'head': head.name,
                'channel': d.name,
                'is_exclusion': d.is_exclusion,
                'interval_count': d.interval_count,
                'raw_minutes': d.raw,
                'merged_minutes': d.merged,
                'net_minutes': d.net,
                'status': d.status,
            })

    if not rows:
        return pd.DataFrame(columns=DURATION_COLUMNS)
    return pd.DataFrame(rows, columns=DURATION_COLUMNS)
