"""
OEE Calculator for Production Timelines

Availability, performance, quality and the two OEE baselines:
- Cycle baseline:  OEE = Availability(cycle window) × 100% × Quality
- Target baseline: OEE = Availability(schedule window) × min(Actual/Target, 1) × Quality

Both baselines are separate functions built from the same availability and
quality helpers. They answer different questions and callers pick one.
"""

import logging
from dataclasses import dataclass
from typing import Dict, NamedTuple

from config import Config
from .safe_math import cap, clamp_number, safe_div

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OEEMetrics:
    """Container for OEE calculation results"""
    availability: float  # 0.0 to 1.0
    performance: float   # 0.0 to 1.0
    quality: float       # 0.0 to 1.0
    oee: float          # 0.0 to 1.0

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for easy display"""
        return {
            'availability': self.availability,
            'performance': self.performance,
            'quality': self.quality,
            'oee': self.oee
        }

    def to_percentage_dict(self) -> Dict[str, float]:
        """Convert to percentage values for display"""
        return {
            'availability': round(self.availability * 100, 2),
            'performance': round(self.performance * 100, 2),
            'quality': round(self.quality * 100, 2),
            'oee': round(self.oee * 100, 2)
        }


def availability_for_window(
    base_time: float,
    downtime_budget: float,
    capped_downtime: float,
    fallback: float = 0.0
) -> float:
    """
    Availability over a planned window that includes the downtime budget.

    Availability = max(0, window - downtime) / window, window = base_time + budget

    Args:
        base_time: Planned time the window is built on (minutes)
        downtime_budget: Allowed downtime added to the window (minutes)
        capped_downtime: Downtime already capped at the budget (minutes)
        fallback: Returned when the window is empty

    Returns:
        Availability ratio (0.0-1.0 for downtime within the window)

    Example:
        >>> round(availability_for_window(480, 60, 30), 4)
        0.9444
    """
    window = clamp_number(base_time) + clamp_number(downtime_budget)
    if window <= 0:
        return fallback
    return max(0.0, window - clamp_number(capped_downtime)) / window


def calculate_utilization(net_running_time: float, planned_time: float, capped_downtime: float) -> float:
    """
    Capacity usage: running time / (planned time + downtime), capped at 100%.
    Running longer than planned still reports 100%.
    """
    return cap(safe_div(max(0.0, clamp_number(net_running_time)), clamp_number(planned_time) + clamp_number(capped_downtime)), 1.0)


def calculate_time_efficiency(planned_time: float, kpi_time: float) -> float:
    """Planned / actual KPI time. Above 1 means faster than planned."""
    return safe_div(planned_time, kpi_time)


def calculate_performance_rate(
    actual_output: float,
    operating_time: float,
    ideal_cycle_time: float,
    ideal_output_per_cycle: float
) -> float:
    """
    Performance rate: actual output vs theoretical max at ideal speed.

    Theoretical max = (operating time / ideal cycle time) × ideal output per cycle.
    The rate is capped at PERFORMANCE_RATE_CAP (150%). When no theoretical max
    can be formed it falls back to actual / (completed cycles × ideal output),
    which is 0 when there are no completed cycles.

    Args:
        actual_output: Units produced
        operating_time: Minutes the equipment was operating
        ideal_cycle_time: Minutes per cycle at ideal speed
        ideal_output_per_cycle: Units per cycle at ideal speed

    Returns:
        Performance ratio
    """
    operating_time = clamp_number(operating_time)
    ideal_output = clamp_number(ideal_output_per_cycle)

    theoretical_max = 0.0
    if operating_time > 0 and ideal_output > 0:
        theoretical_max = safe_div(operating_time, ideal_cycle_time) * ideal_output

    if theoretical_max > 0:
        return cap(safe_div(actual_output, theoretical_max), Config.PERFORMANCE_RATE_CAP)

    completed_cycles = safe_div(operating_time, ideal_cycle_time)
    return safe_div(actual_output, completed_cycles * (ideal_output or 1.0))


def calculate_quality_rate(good_output: float, actual_output: float) -> float:
    """
    Good / total output. Defaults to 1.0 when nothing was produced
    (no data to penalize). Good output above total counts as total.
    """
    actual_output = clamp_number(actual_output)
    if actual_output <= 0:
        return 1.0
    good = min(max(0.0, clamp_number(good_output)), actual_output)
    return safe_div(good, actual_output)


def oee_cycle_base(
    cycle_time: float,
    downtime_budget: float,
    capped_downtime: float,
    quality_rate: float
) -> OEEMetrics:
    """
    OEE against the ideal cycle.

    The window is one ideal cycle plus the downtime budget and performance is
    taken as ideal (1.0). This answers "was the available time used well
    against the ideal cycle".
    """
    availability = availability_for_window(cycle_time, downtime_budget, capped_downtime)
    quality = cap(clamp_number(quality_rate), 1.0)
    return OEEMetrics(
        availability=availability,
        performance=1.0,
        quality=quality,
        oee=availability * quality
    )


def oee_target_base(
    planned_time: float,
    downtime_budget: float,
    capped_downtime: float,
    actual_output: float,
    target_output: float,
    quality_rate: float,
    fallback_availability: float = 0.0
) -> OEEMetrics:
    """
    OEE against the configured target.

    Availability is taken over the schedule window (planned time + budget) and
    performance is actual / target capped at 100% (0 without a target). This
    answers "did we hit the configured target".

    Args:
        planned_time: Planned schedule time (minutes)
        downtime_budget: Downtime budget (minutes)
        capped_downtime: Downtime capped at the budget (minutes)
        actual_output: Units produced
        target_output: Computed target output
        quality_rate: Quality ratio
        fallback_availability: Availability to use when the schedule window is empty

    Returns:
        OEEMetrics for the target baseline
    """
    availability = availability_for_window(
        planned_time, downtime_budget, capped_downtime, fallback=fallback_availability
    )
    performance = cap(safe_div(actual_output, target_output), 1.0) if target_output > 0 else 0.0
    quality = cap(clamp_number(quality_rate), 1.0)
    return OEEMetrics(
        availability=availability,
        performance=performance,
        quality=quality,
        oee=availability * performance * quality
    )


class StatusBand(NamedTuple):
    status: str
    text: str


def classify_productivity(ratio: float) -> StatusBand:
    """Band a productivity ratio (actual ÷ target)"""
    if ratio == 0:
        return StatusBand("no-data", "No output or target yet")
    if ratio >= 1.2:
        return StatusBand("excellent", "Highly productive")
    if ratio >= 1.0:
        return StatusBand("good", "Productive")
    if ratio >= 0.8:
        return StatusBand("fair", "Fairly productive")
    if ratio >= 0.5:
        return StatusBand("poor", "Under target")
    return StatusBand("critical", "Critical - needs improvement")


def classify_efficiency(availability: float) -> StatusBand:
    """Band an availability ratio"""
    if availability >= 0.95:
        return StatusBand("excellent", "Highly efficient")
    if availability >= 0.85:
        return StatusBand("good", "Efficient")
    if availability >= 0.7:
        return StatusBand("fair", "Fairly efficient")
    if availability >= 0.5:
        return StatusBand("poor", "Inefficient")
    return StatusBand("critical", "Very inefficient")


def classify_oee(oee: float) -> str:
    """OEE class: World Class (>= 85%), Typical (>= 65%), Needs Improvement"""
    if oee >= 0.85:
        return "World Class"
    if oee >= 0.65:
        return "Typical"
    return "Needs Improvement"
