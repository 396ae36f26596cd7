"""
Interval Algebra

Set operations on half-open [start, end) minute intervals:
- merge_intervals: union of overlapping or touching intervals
- subtract_intervals: slice exclusion (cutoff) spans out of activity spans
- total_duration / raw_duration: duration sums

All functions are pure. Inputs may be TimeInterval objects or (start, end)
pairs; invalid pairs (non-finite, zero or negative length) are ignored.
"""

import logging
from typing import Iterable, List

from .models import TimeInterval, make_intervals

logger = logging.getLogger(__name__)


def merge_intervals(intervals: Iterable) -> List[TimeInterval]:
    """
    Merge overlapping or touching intervals.

    Sorted by start, then swept left to right: the next interval is folded into
    the current run whenever next.start <= current.end (exact touch included).

    Args:
        intervals: TimeInterval objects or (start, end) pairs, any order

    Returns:
        Sorted, pairwise-disjoint list of TimeInterval objects

    Example:
        >>> merge_intervals([(150, 300), (0, 200), (400, 450)])
        [TimeInterval(0 → 300), TimeInterval(400 → 450)]
    """
    valid = make_intervals(intervals)
    if not valid:
        return []

    sorted_intervals = sorted(valid, key=lambda i: i.start)

    merged = [sorted_intervals[0]]
    for current in sorted_intervals[1:]:
        previous = merged[-1]
        if current.start <= previous.end:
            if current.end > previous.end:
                merged[-1] = TimeInterval(previous.start, current.end)
        else:
            merged.append(current)

    return merged


def subtract_intervals(intervals: Iterable, exclusions: Iterable) -> List[TimeInterval]:
    """
    Remove exclusion spans from every source interval.

    Sources are merged first. Each merged interval is then folded over the
    exclusions in input order: an exclusion overlapping a surviving segment
    removes it (full cover), shrinks one side, or splits it in two (strictly
    inside). Touching endpoints do not overlap. Exclusions need not be merged
    first since every step only shrinks the surviving set.

    Args:
        intervals: Source TimeInterval objects or (start, end) pairs
        exclusions: Exclusion TimeInterval objects or pairs, possibly overlapping

    Returns:
        Sorted, pairwise-disjoint surviving segments

    Example:
        >>> subtract_intervals([(0, 300)], [(100, 120)])
        [TimeInterval(0 → 100), TimeInterval(120 → 300)]
    """
    cutoffs = make_intervals(exclusions)
    result: List[TimeInterval] = []

    for interval in merge_intervals(intervals):
        segments = [interval]
        for cutoff in cutoffs:
            sliced = []
            for seg in segments:
                if cutoff.end <= seg.start or cutoff.start >= seg.end:
                    sliced.append(seg)
                    continue
                if cutoff.start > seg.start:
                    sliced.append(TimeInterval(seg.start, cutoff.start))
                if cutoff.end < seg.end:
                    sliced.append(TimeInterval(cutoff.end, seg.end))
            segments = sliced
            if not segments:
                break
        result.extend(segments)

    return result


def total_duration(intervals: Iterable) -> float:
    """
    Sum of interval lengths.

    Overlaps are counted as many times as they appear, so merge (or subtract
    from a merged set) first when the authoritative "actual" duration is wanted.
    """
    return float(sum(i.duration for i in make_intervals(intervals)))


def raw_duration(intervals: Iterable) -> float:
    """Per-interval duration sum over unmerged input (overlap counted repeatedly)."""
    return total_duration(intervals)


def find_out_of_bounds(intervals: Iterable, bound: float) -> List[TimeInterval]:
    """
    Find intervals with an endpoint outside [0, bound].

    Such intervals are still counted in every duration sum; this only reports them.

    Args:
        intervals: TimeInterval objects or pairs
        bound: Upper end of the valid domain (head total duration)

    Returns:
        Offending intervals in input order
    """
    return [
        i for i in make_intervals(intervals)
        if i.start < 0 or i.end > bound
    ]
