"""
Throughput Calculation Functions

KPI time, target output, productivity, takt and output-gap calculations.
All functions are pure and return 0 instead of NaN/inf on degenerate input.
"""

import logging
from typing import Optional, Tuple

from .safe_math import cap, clamp_number, safe_div
from .settings import KpiConfig, TargetBasis, TimeContext

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60.0


def cap_downtime(downtime: float, downtime_budget: float) -> float:
    """
    Cap downtime at the budget.

    A budget of 0 (or less) means no budget: downtime passes through uncapped.
    Negative downtime is floored at 0.

    Example:
        >>> cap_downtime(90, 60)
        60.0
        >>> cap_downtime(90, 0)
        90.0
    """
    downtime = clamp_number(downtime)
    budget = clamp_number(downtime_budget)
    limit = budget if budget > 0 else downtime
    return max(0.0, min(downtime, limit))


def calculate_kpi_time(
    actual_time: float,
    capped_downtime: float,
    time_context: TimeContext
) -> float:
    """KPI time: actual time, plus capped downtime under the production+downtime context"""
    actual_time = clamp_number(actual_time)
    if time_context is TimeContext.PRODUCTION_PLUS_DOWNTIME:
        return actual_time + clamp_number(capped_downtime)
    return actual_time


def elapsed_basis_units(
    kpi_time: float,
    target_basis: TargetBasis,
    cycle_time: float,
    shift_duration: Optional[float] = None
) -> float:
    """
    Convert KPI time into elapsed units of the target basis.

    Args:
        kpi_time: KPI time in minutes
        target_basis: Basis the target rate is expressed in
        cycle_time: Minutes per cycle (per-cycle basis)
        shift_duration: Minutes per shift (per-shift basis); unset gives 0 shifts

    Returns:
        Elapsed hours, shifts or cycles
    """
    if target_basis is TargetBasis.PER_HOUR:
        return safe_div(kpi_time, MINUTES_PER_HOUR)
    if target_basis is TargetBasis.PER_SHIFT:
        shift = clamp_number(shift_duration)
        if shift <= 0:
            logger.debug("Per-shift basis without a shift duration, elapsed shifts = 0")
            return 0.0
        return safe_div(kpi_time, shift)
    return safe_div(kpi_time, cycle_time)


def calculate_target_output(
    config: KpiConfig,
    kpi_time: float,
    planned_time: float,
    cycle_time: float,
    units_per_cycle: float
) -> float:
    """
    Compute the target output the actual output is measured against.

    Resolution order:
    1. Manual target (config.target_enabled): manual_target_output as-is
    2. Rate target (config.target_rate set): target_rate × elapsed basis units
    3. Plan target: planned_time / cycle_time × units_per_cycle

    Example:
        >>> cfg = KpiConfig(target_basis="hour", target_rate=10)
        >>> calculate_target_output(cfg, kpi_time=120, planned_time=480,
        ...                         cycle_time=210, units_per_cycle=1)
        20.0
    """
    if config.target_enabled:
        return clamp_number(config.manual_target_output)

    if config.target_rate is not None:
        units = elapsed_basis_units(kpi_time, config.target_basis, cycle_time, config.shift_duration)
        return clamp_number(config.target_rate) * units

    return safe_div(planned_time, cycle_time) * units_per_cycle


def calculate_actual_output(
    config: KpiConfig,
    kpi_time: float,
    cycle_time: float,
    units_per_cycle: float
) -> float:
    """Explicit actual output when configured, otherwise completed cycles × units per cycle"""
    if config.actual_output is not None:
        return clamp_number(config.actual_output)
    return safe_div(kpi_time, cycle_time) * units_per_cycle


def calculate_productivity_ratio(actual_output: float, target_output: float) -> float:
    """Actual ÷ target (0 when there is no target)"""
    return safe_div(actual_output, target_output)


def calculate_takt(
    planned_time: float,
    kpi_time: float,
    actual_output: float,
    target_output: float
) -> Tuple[float, float, float]:
    """
    Takt metrics.

    Takt time = planned time / target output
    Actual cycle time = KPI time / actual output
    Takt adherence = min(takt / actual cycle, 1)

    Returns:
        (takt_time, actual_cycle_time, takt_adherence), each 0 when undefined
    """
    takt_time = safe_div(planned_time, target_output) if target_output > 0 else 0.0
    actual_cycle_time = safe_div(kpi_time, actual_output) if actual_output > 0 else 0.0
    adherence = cap(safe_div(takt_time, actual_cycle_time), 1.0) if takt_time > 0 else 0.0
    return takt_time, actual_cycle_time, adherence


def calculate_output_gap(actual_output: float, target_output: float) -> Tuple[float, float]:
    """
    Output gap against target.

    Returns:
        (gap, gap_percentage); the percentage is 0 when the target is 0

    Example:
        >>> calculate_output_gap(15, 20)
        (-5.0, -25.0)
    """
    gap = clamp_number(actual_output) - clamp_number(target_output)
    gap_pct = safe_div(gap, target_output) * 100.0 if target_output > 0 else 0.0
    return float(gap), float(gap_pct)
