"""
Production Session
Owns the current head snapshot and KPI configuration for one production and
recomputes every figure from scratch on request.
"""
import logging
from typing import Any, Optional, Sequence, Union

import pandas as pd

from core.calculations.durations import (
    ProductionDurations,
    aggregate_production,
    durations_dataframe,
    head_durations,
)
from core.calculations.kpi import KpiInputs, MetricsRecord, compute_metrics
from core.calculations.oee import classify_efficiency, classify_oee, classify_productivity
from core.calculations.settings import KpiConfig, TargetBasis, apply_basis_change
from core.interchange.payload import dumps_payload, import_payload, parse_payload_text
from core.time_windows.models import HeadChannel
from utils.formatting import format_duration, format_percentage

logger = logging.getLogger(__name__)

HEAD_SUMMARY_COLUMNS = [
    'head', 'total_minutes', 'cutoff_minutes', 'running_minutes',
    'raw_minutes', 'net_minutes', 'actual_minutes', 'overlap_minutes',
    'downtime_minutes', 'sub_channels', 'cutoff_channels', 'out_of_bounds'
]

HEAD_METRICS_COLUMNS = [
    'head', 'kpi_time', 'target_output', 'actual_output', 'productivity_ratio',
    'availability', 'performance_rate', 'quality_rate',
    'oee_cycle_base', 'oee_target_base', 'takt_adherence'
]


class ProductionSession:
    """
    Current state of one production: heads plus KPI configuration.

    Heads and configuration are immutable snapshots; the session only swaps
    them for new snapshots. Imports and basis changes either fully succeed or
    leave the session exactly as it was.
    """

    def __init__(
        self,
        name: str = "Main Production",
        heads: Sequence[HeadChannel] = (),
        config: Optional[KpiConfig] = None,
        planned_time: Optional[float] = None,
        downtime: Optional[float] = None
    ):
        self.name = name
        self._heads = tuple(heads)
        self._config = config or KpiConfig()
        self.planned_time = planned_time
        self.downtime = downtime

    @property
    def heads(self) -> tuple:
        return self._heads

    @property
    def config(self) -> KpiConfig:
        return self._config

    def set_heads(self, heads: Sequence[HeadChannel]):
        """Replace the head snapshot"""
        self._heads = tuple(heads)

    def load_payload(self, payload: Union[str, list]) -> int:
        """
        Import heads from payload text or decoded JSON, replacing the current heads.

        Args:
            payload: Payload text (code fences allowed) or an already decoded list

        Returns:
            Number of heads imported

        Raises:
            PayloadImportError: Malformed payload; current heads are left untouched
        """
        data = parse_payload_text(payload) if isinstance(payload, str) else payload
        imported = import_payload(data)
        self._heads = imported
        logger.info(f"{self.name}: loaded {len(imported)} head channel(s)")
        return len(imported)

    def export_payload(self, start_clock: Optional[str] = None) -> str:
        """Serialize the current heads (clock variant when start_clock is given)"""
        return dumps_payload(self._heads, start_clock=start_clock)

    def change_basis(
        self,
        new_basis: Union[TargetBasis, str],
        shift_duration: Any = None
    ) -> KpiConfig:
        """
        Switch the target basis through the per-shift gate.

        Raises:
            ConfigValidationError: Rejected change; configuration unchanged
        """
        self._config = apply_basis_change(self._config, new_basis, shift_duration)
        return self._config

    def update_config(self, **changes) -> KpiConfig:
        """Apply configuration changes (basis changes are gated)"""
        self._config = self._config.with_updates(**changes)
        return self._config

    def durations(self) -> ProductionDurations:
        return aggregate_production(self._heads, planned_time=self.planned_time, downtime=self.downtime)

    def compute(self) -> MetricsRecord:
        """
        Recompute the full metrics record from the current snapshot.

        Returns:
            MetricsRecord
        """
        durations = self.durations()

        budget = self._config.downtime_budget
        if budget > 0 and durations.downtime > budget:
            logger.warning(
                f"{self.name}: downtime {format_duration(durations.downtime)} exceeds the "
                f"{format_duration(budget)} budget, capped for KPI time"
            )

        metrics = compute_metrics(self._config, KpiInputs.from_durations(durations))

        logger.info(
            f"{self.name}: {durations.heads_count} head(s), "
            f"KPI time {format_duration(metrics.kpi_time)}, "
            f"productivity {format_percentage(metrics.productivity_ratio)} "
            f"({classify_productivity(metrics.productivity_ratio).status}), "
            f"availability {format_percentage(metrics.availability)} "
            f"({classify_efficiency(metrics.availability).status}), "
            f"OEE cycle {format_percentage(metrics.oee_cycle_base)} ({classify_oee(metrics.oee_cycle_base)}), "
            f"OEE target {format_percentage(metrics.oee_target_base)}"
        )
        return metrics

    def channel_summary(self) -> pd.DataFrame:
        """Raw / merged / net durations per sub-channel"""
        return durations_dataframe(self._heads)

    def head_summary(self) -> pd.DataFrame:
        """
        Duration breakdown per head.

        Returns:
            DataFrame with HEAD_SUMMARY_COLUMNS, one row per head
        """
        rows = []
        for head in self._heads:
            summary = head_durations(head)
            rows.append({
                'head': head.name,
                'total_minutes': summary.total_duration,
                'cutoff_minutes': summary.exclusion_duration,
                'running_minutes': summary.running_duration,
                'raw_minutes': summary.raw_total,
                'net_minutes': summary.net_total,
                'actual_minutes': summary.actual_total,
                'overlap_minutes': summary.overlap_minutes,
                'downtime_minutes': summary.downtime,
                'sub_channels': len(head.activity_channels),
                'cutoff_channels': len(head.exclusion_channels),
                'out_of_bounds': summary.out_of_bounds_count,
            })

        if not rows:
            return pd.DataFrame(columns=HEAD_SUMMARY_COLUMNS)
        return pd.DataFrame(rows, columns=HEAD_SUMMARY_COLUMNS)


def calculate_head_metrics(heads: Sequence[HeadChannel], config: KpiConfig) -> pd.DataFrame:
    """
    Compute KPIs for each head on its own.

    Each head is treated as a one-head production: its own duration is the
    planned time and its own downtime items are the downtime.

    Args:
        heads: Head channels
        config: KPI configuration applied to every head

    Returns:
        DataFrame with HEAD_METRICS_COLUMNS, one row per head

    Edge Cases:
    - No heads: empty DataFrame with the expected columns
    """
    rows = []
    for head in heads:
        metrics = compute_metrics(config, KpiInputs.from_durations(aggregate_production([head])))
        rows.append({
            'head': head.name,
            'kpi_time': metrics.kpi_time,
            'target_output': metrics.target_output,
            'actual_output': metrics.actual_output,
            'productivity_ratio': metrics.productivity_ratio,
            'availability': metrics.availability,
            'performance_rate': metrics.performance_rate,
            'quality_rate': metrics.quality_rate,
            'oee_cycle_base': metrics.oee_cycle_base,
            'oee_target_base': metrics.oee_target_base,
            'takt_adherence': metrics.takt_adherence,
        })

    if not rows:
        return pd.DataFrame(columns=HEAD_METRICS_COLUMNS)
    return pd.DataFrame(rows, columns=HEAD_METRICS_COLUMNS)
