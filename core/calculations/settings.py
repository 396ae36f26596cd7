"""
KPI Configuration

Enumerated KPI options, the immutable KpiConfig record, and the basis-change
gate that guards switching to a per-shift target.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from config import Config
from core.errors import ConfigValidationError

logger = logging.getLogger(__name__)


class TargetBasis(str, Enum):
    """Unit the target rate is expressed against"""
    PER_CYCLE = "cycle"
    PER_HOUR = "hour"
    PER_SHIFT = "shift"


class ActualBasis(str, Enum):
    """Which elapsed duration feeds the KPI math"""
    NET = "net"   # head time minus exclusions
    RAW = "raw"   # head time including exclusions


class TimeContext(str, Enum):
    """Whether KPI time includes (capped) downtime"""
    PRODUCTION_ONLY = "production"
    PRODUCTION_PLUS_DOWNTIME = "production_plus_downtime"


def _coerce_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = [m.value for m in enum_cls]
        raise ConfigValidationError(
            f"Unknown {enum_cls.__name__}: '{value}'. Valid options: {valid}"
        ) from None


@dataclass(frozen=True)
class KpiConfig:
    """
    KPI configuration snapshot.

    Optional fields fall back at computation time:
    - ideal_output_per_cycle -> units_per_cycle
    - ideal_cycle_time -> cycle_time_per_unit
    - good_output -> actual output (no rejects)
    - actual_output -> completed cycles × units_per_cycle
    - target: manual_target_output when target_enabled, else
      target_rate × elapsed basis units, else planned_time / cycle time × units
    """
    target_basis: TargetBasis = TargetBasis.PER_CYCLE
    actual_basis: ActualBasis = ActualBasis.NET
    time_context: TimeContext = TimeContext.PRODUCTION_ONLY
    cycle_time_per_unit: float = Config.DEFAULT_CYCLE_TIME_MINUTES
    units_per_cycle: float = Config.DEFAULT_UNITS_PER_CYCLE
    ideal_output_per_cycle: Optional[float] = None
    ideal_cycle_time: Optional[float] = None
    good_output: Optional[float] = None
    shift_duration: Optional[int] = None
    downtime_budget: float = Config.DEFAULT_DOWNTIME_BUDGET_MINUTES
    target_rate: Optional[float] = None
    target_enabled: bool = False
    manual_target_output: float = 0.0
    actual_output: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "target_basis", _coerce_enum(TargetBasis, self.target_basis))
        object.__setattr__(self, "actual_basis", _coerce_enum(ActualBasis, self.actual_basis))
        object.__setattr__(self, "time_context", _coerce_enum(TimeContext, self.time_context))
        # Per-shift requires a valid shift; a shift set on any basis must be valid too
        if self.shift_duration is not None or self.target_basis is TargetBasis.PER_SHIFT:
            object.__setattr__(self, "shift_duration", validate_shift_duration(self.shift_duration))

    def with_updates(self, **changes) -> 'KpiConfig':
        """
        Return a copy with the given fields changed.

        A change of target_basis goes through apply_basis_change() so the
        per-shift gate cannot be bypassed. Every copy is re-validated, so a
        shift_duration change on a per-shift config is checked as well.

        Raises:
            ConfigValidationError: Invalid basis or shift duration; self is unchanged
        """
        if "target_basis" not in changes:
            return replace(self, **changes)

        basis = _coerce_enum(TargetBasis, changes.pop("target_basis"))
        if basis is TargetBasis.PER_SHIFT:
            updated = apply_basis_change(self, basis, changes.pop("shift_duration", None))
        else:
            updated = apply_basis_change(self, basis)
        return replace(updated, **changes) if changes else updated


def validate_shift_duration(value: Union[int, float, str, None]) -> int:
    """
    Validate a proposed shift duration.

    Args:
        value: Minutes as int, integral float or numeric string

    Returns:
        Shift duration in whole minutes

    Raises:
        ConfigValidationError: Missing, non-numeric, non-integer, or outside
            [MIN_SHIFT_MINUTES, MAX_SHIFT_MINUTES]. Values are never clamped.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigValidationError("Shift duration is required")
    if isinstance(value, bool):
        raise ConfigValidationError("Shift duration must be a number")

    try:
        minutes = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"Shift duration must be a number, got {value!r}") from None

    if not math.isfinite(minutes):
        raise ConfigValidationError("Shift duration must be a finite number")
    if not minutes.is_integer():
        raise ConfigValidationError(f"Shift duration must be whole minutes, got {minutes:g}")
    if minutes < Config.MIN_SHIFT_MINUTES:
        raise ConfigValidationError(f"Shift duration must be > 0, got {minutes:g}")
    if minutes > Config.MAX_SHIFT_MINUTES:
        raise ConfigValidationError(
            f"Shift duration max is {Config.MAX_SHIFT_MINUTES} minutes, got {minutes:g}"
        )

    return int(minutes)


def apply_basis_change(
    config: KpiConfig,
    new_basis: Union[TargetBasis, str],
    proposed_shift_duration: Union[int, float, str, None] = None
) -> KpiConfig:
    """
    Switch the target basis.

    Per-cycle and per-hour are always accepted. Per-shift is accepted only
    with a valid shift duration: the proposed one, or the one already
    configured when nothing is proposed.

    Args:
        config: Current configuration (left untouched)
        new_basis: Requested target basis
        proposed_shift_duration: Shift minutes entered with the change

    Returns:
        New KpiConfig with the basis applied

    Raises:
        ConfigValidationError: Unknown basis, or per-shift without a valid shift duration

    Example:
        >>> cfg = apply_basis_change(KpiConfig(), "shift", 480)
        >>> cfg.target_basis, cfg.shift_duration
        (<TargetBasis.PER_SHIFT: 'shift'>, 480)
    """
    basis = _coerce_enum(TargetBasis, new_basis)

    if basis is not TargetBasis.PER_SHIFT:
        return replace(config, target_basis=basis)

    candidate = proposed_shift_duration if proposed_shift_duration is not None else config.shift_duration
    try:
        shift_minutes = validate_shift_duration(candidate)
    except ConfigValidationError as e:
        logger.warning(f"Rejected switch to per-shift basis: {e}")
        raise

    logger.info(f"Target basis set to per-shift ({shift_minutes} min)")
    return replace(config, target_basis=TargetBasis.PER_SHIFT, shift_duration=shift_minutes)
