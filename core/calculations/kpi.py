"""
KPI Engine

Turns aggregated durations plus a KpiConfig into the full MetricsRecord.
Every call recomputes everything from the snapshot it is given.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

from core.time_windows.models import HeadChannel
from .durations import ProductionDurations, aggregate_production
from .oee import (
    availability_for_window,
    calculate_performance_rate,
    calculate_quality_rate,
    calculate_time_efficiency,
    calculate_utilization,
    oee_cycle_base,
    oee_target_base,
)
from .safe_math import clamp_number, safe_div
from .settings import ActualBasis, KpiConfig, TimeContext
from .throughput import (
    calculate_actual_output,
    calculate_kpi_time,
    calculate_output_gap,
    calculate_productivity_ratio,
    calculate_takt,
    calculate_target_output,
    cap_downtime,
)

logger = logging.getLogger(__name__)

RATIO_FIELDS = (
    'productivity_ratio', 'availability', 'availability_cycle', 'availability_target',
    'utilization', 'time_efficiency', 'performance_rate', 'quality_rate',
    'oee_cycle_base', 'oee_target_base', 'takt_adherence',
)


@dataclass(frozen=True)
class KpiInputs:
    """Time figures the KPI engine works from (minutes)"""
    planned_time: float
    actual_raw_time: float
    actual_net_time: float
    downtime: float = 0.0
    heads_count: int = 1

    @classmethod
    def from_durations(cls, durations: ProductionDurations) -> 'KpiInputs':
        return cls(
            planned_time=durations.planned_time,
            actual_raw_time=durations.actual_raw_time,
            actual_net_time=durations.actual_net_time,
            downtime=durations.downtime,
            heads_count=durations.heads_count,
        )


@dataclass(frozen=True)
class MetricsRecord:
    """Full KPI result for one production snapshot. Ratios are 0.0-1.0 unless noted."""
    # Time basis (minutes)
    planned_time: float
    actual_time: float
    kpi_time: float
    capped_downtime: float
    completed_cycles: float

    # Output
    target_output: float
    actual_output: float
    good_output: float
    productivity_ratio: float
    productivity_per_hour: float
    productivity_per_cycle: float
    output_per_head: float

    # Efficiency
    availability: float
    availability_cycle: float
    availability_target: float
    utilization: float
    time_efficiency: float
    performance_rate: float     # capped at 1.5
    performance_target: float
    quality_rate: float
    oee_cycle_base: float
    oee_target_base: float

    # Takt and gap
    takt_time: float
    actual_cycle_time: float
    takt_adherence: float
    output_gap: float
    gap_percentage: float       # percent, not ratio

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for easy display"""
        return asdict(self)

    def to_percentage_dict(self) -> Dict[str, float]:
        """Ratio metrics as rounded percentages"""
        return {name: round(getattr(self, name) * 100, 2) for name in RATIO_FIELDS}

    def oee(self, baseline: str = "cycle") -> float:
        """Select an OEE baseline: 'cycle' or 'target'"""
        if baseline == "cycle":
            return self.oee_cycle_base
        if baseline == "target":
            return self.oee_target_base
        raise ValueError(
            f"Unknown OEE baseline: '{baseline}'. Valid options: 'cycle', 'target'"
        )


def compute_metrics(config: KpiConfig, inputs: KpiInputs) -> MetricsRecord:
    """
    Compute every KPI for the given configuration and time inputs.

    Args:
        config: KPI configuration snapshot
        inputs: Planned/actual/downtime minutes for the production

    Returns:
        MetricsRecord

    Example:
        >>> cfg = KpiConfig(target_basis="hour", target_rate=10, actual_output=15)
        >>> m = compute_metrics(cfg, KpiInputs(planned_time=120, actual_raw_time=120,
        ...                                    actual_net_time=120, downtime=0))
        >>> m.target_output, m.productivity_ratio, m.gap_percentage
        (20.0, 0.75, -25.0)
    """
    cycle_time = clamp_number(config.cycle_time_per_unit)
    units_per_cycle = clamp_number(config.units_per_cycle) or 1.0
    ideal_output_per_cycle = clamp_number(
        config.ideal_output_per_cycle if config.ideal_output_per_cycle is not None else units_per_cycle
    )
    ideal_cycle_time = clamp_number(
        config.ideal_cycle_time if config.ideal_cycle_time is not None else cycle_time
    )
    downtime_budget = clamp_number(config.downtime_budget)

    planned_time = clamp_number(inputs.planned_time)
    actual_time = clamp_number(
        inputs.actual_raw_time if config.actual_basis is ActualBasis.RAW else inputs.actual_net_time
    )
    capped_downtime = cap_downtime(inputs.downtime, downtime_budget)
    kpi_time = calculate_kpi_time(actual_time, capped_downtime, config.time_context)
    heads_count = max(0, int(clamp_number(inputs.heads_count)))

    # Output
    completed_cycles = safe_div(kpi_time, cycle_time)
    actual_output = calculate_actual_output(config, kpi_time, cycle_time, units_per_cycle)
    target_output = calculate_target_output(config, kpi_time, planned_time, cycle_time, units_per_cycle)
    good_output = clamp_number(config.good_output if config.good_output is not None else actual_output)
    productivity_ratio = calculate_productivity_ratio(actual_output, target_output)

    # Efficiency
    net_running = max(0.0, actual_time)
    operating_time = kpi_time if config.time_context is TimeContext.PRODUCTION_PLUS_DOWNTIME else net_running
    quality_rate = calculate_quality_rate(good_output, actual_output)
    performance_rate = calculate_performance_rate(
        actual_output, operating_time, ideal_cycle_time, ideal_output_per_cycle
    )
    cycle_oee = oee_cycle_base(cycle_time, downtime_budget, capped_downtime, quality_rate)
    target_oee = oee_target_base(
        planned_time, downtime_budget, capped_downtime, actual_output, target_output,
        quality_rate, fallback_availability=cycle_oee.availability
    )

    takt_time, actual_cycle_time, takt_adherence = calculate_takt(
        planned_time, kpi_time, actual_output, target_output
    )
    output_gap, gap_percentage = calculate_output_gap(actual_output, target_output)

    logger.debug(
        f"KPI: basis={config.target_basis.value} actual={config.actual_basis.value} "
        f"kpi_time={kpi_time:.2f} target={target_output:.2f} actual_output={actual_output:.2f} "
        f"oee_cycle={cycle_oee.oee:.3f} oee_target={target_oee.oee:.3f}"
    )

    return MetricsRecord(
        planned_time=planned_time,
        actual_time=actual_time,
        kpi_time=kpi_time,
        capped_downtime=capped_downtime,
        completed_cycles=completed_cycles,
        target_output=target_output,
        actual_output=actual_output,
        good_output=good_output,
        productivity_ratio=productivity_ratio,
        productivity_per_hour=safe_div(actual_output, kpi_time / 60.0),
        productivity_per_cycle=safe_div(actual_output, completed_cycles),
        output_per_head=safe_div(actual_output, heads_count),
        availability=availability_for_window(planned_time, downtime_budget, capped_downtime),
        availability_cycle=cycle_oee.availability,
        availability_target=target_oee.availability,
        utilization=calculate_utilization(net_running, planned_time, capped_downtime),
        time_efficiency=calculate_time_efficiency(planned_time, kpi_time),
        performance_rate=performance_rate,
        performance_target=target_oee.performance,
        quality_rate=quality_rate,
        oee_cycle_base=cycle_oee.oee,
        oee_target_base=target_oee.oee,
        takt_time=takt_time,
        actual_cycle_time=actual_cycle_time,
        takt_adherence=takt_adherence,
        output_gap=output_gap,
        gap_percentage=gap_percentage,
    )


def compute_production_metrics(
    heads: Sequence[HeadChannel],
    config: KpiConfig,
    planned_time: Optional[float] = None,
    downtime: Optional[float] = None
) -> MetricsRecord:
    """
    Aggregate head durations and compute the metrics in one pass.

    Args:
        heads: Parallel head channels of one production
        config: KPI configuration
        planned_time: Planned schedule override (minutes); defaults to average head duration
        downtime: Downtime override (minutes); defaults to the heads' downtime items

    Returns:
        MetricsRecord
    """
    durations = aggregate_production(heads, planned_time=planned_time, downtime=downtime)
    return compute_metrics(config, KpiInputs.from_durations(durations))
