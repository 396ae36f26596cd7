import math
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from core.calculations.kpi import (
    RATIO_FIELDS,
    KpiInputs,
    compute_metrics,
    compute_production_metrics,
)
from core.calculations.oee import (
    availability_for_window,
    calculate_performance_rate,
    calculate_quality_rate,
    classify_efficiency,
    classify_oee,
    classify_productivity,
    oee_cycle_base,
    oee_target_base,
)
from core.calculations.safe_math import cap, clamp_number, safe_div
from core.calculations.settings import KpiConfig, TargetBasis, TimeContext
from core.calculations.throughput import (
    calculate_output_gap,
    cap_downtime,
    elapsed_basis_units,
)


def _inputs(planned=120.0, raw=120.0, net=120.0, downtime=0.0, heads=1):
    return KpiInputs(
        planned_time=planned,
        actual_raw_time=raw,
        actual_net_time=net,
        downtime=downtime,
        heads_count=heads,
    )


def test_per_hour_target_scenario():
    config = KpiConfig(target_basis="hour", target_rate=10, actual_output=15)
    metrics = compute_metrics(config, _inputs())

    assert metrics.kpi_time == 120.0
    assert metrics.target_output == pytest.approx(20.0)
    assert metrics.productivity_ratio == pytest.approx(0.75)
    assert metrics.output_gap == pytest.approx(-5.0)
    assert metrics.gap_percentage == pytest.approx(-25.0)


def test_takt_metrics():
    config = KpiConfig(target_basis="hour", target_rate=10, actual_output=15)
    metrics = compute_metrics(config, _inputs())
    assert metrics.takt_time == pytest.approx(6.0)
    assert metrics.actual_cycle_time == pytest.approx(8.0)
    assert metrics.takt_adherence == pytest.approx(0.75)


def test_availability_scenario():
    metrics = compute_metrics(KpiConfig(downtime_budget=60), _inputs(planned=480, raw=480, net=480, downtime=30))
    assert metrics.availability == pytest.approx(510 / 540)
    assert round(metrics.availability, 4) == 0.9444


def test_productivity_is_one_at_target():
    config = KpiConfig(target_basis="hour", target_rate=10, actual_output=20)
    assert compute_metrics(config, _inputs()).productivity_ratio == pytest.approx(1.0)


@given(
    rate=st.floats(0.1, 100),
    minutes=st.floats(1, 1000),
)
def test_productivity_is_one_when_output_matches_rate(rate, minutes):
    config = KpiConfig(target_basis="hour", target_rate=rate, actual_output=rate * minutes / 60.0)
    metrics = compute_metrics(config, _inputs(planned=minutes, raw=minutes, net=minutes))
    assert metrics.productivity_ratio == pytest.approx(1.0)


def test_per_shift_target():
    config = KpiConfig(target_basis="shift", shift_duration=480, target_rate=100)
    metrics = compute_metrics(config, _inputs(planned=240, raw=240, net=240))
    assert metrics.target_output == pytest.approx(50.0)


def test_per_shift_without_duration_gives_zero_shifts():
    assert elapsed_basis_units(240, TargetBasis.PER_SHIFT, 210, None) == 0.0


def test_per_cycle_rate_target():
    config = KpiConfig(target_rate=2, cycle_time_per_unit=60)
    metrics = compute_metrics(config, _inputs())
    assert metrics.target_output == pytest.approx(4.0)


def test_manual_target_wins():
    config = KpiConfig(target_basis="hour", target_rate=10, target_enabled=True, manual_target_output=50)
    assert compute_metrics(config, _inputs()).target_output == 50.0


def test_plan_target_and_derived_output():
    metrics = compute_metrics(KpiConfig(), _inputs(planned=420, raw=420, net=420))
    assert metrics.target_output == pytest.approx(2.0)
    assert metrics.actual_output == pytest.approx(2.0)
    assert metrics.completed_cycles == pytest.approx(2.0)
    assert metrics.productivity_ratio == pytest.approx(1.0)


def test_actual_basis_selects_elapsed_time():
    inputs = _inputs(planned=480, raw=480, net=460)
    assert compute_metrics(KpiConfig(), inputs).actual_time == 460.0
    assert compute_metrics(KpiConfig(actual_basis="raw"), inputs).actual_time == 480.0


def test_kpi_time_adds_capped_downtime():
    config = KpiConfig(time_context=TimeContext.PRODUCTION_PLUS_DOWNTIME, downtime_budget=60)
    metrics = compute_metrics(config, _inputs(downtime=90))
    assert metrics.capped_downtime == 60.0
    assert metrics.kpi_time == 180.0


def test_zero_budget_leaves_downtime_uncapped():
    config = KpiConfig(time_context="production_plus_downtime", downtime_budget=0)
    assert compute_metrics(config, _inputs(downtime=90)).kpi_time == 210.0


def test_cap_downtime():
    assert cap_downtime(90, 60) == 60.0
    assert cap_downtime(30, 60) == 30.0
    assert cap_downtime(90, 0) == 90.0
    assert cap_downtime(-5, 60) == 0.0


def test_quality_rate():
    assert calculate_quality_rate(8, 10) == pytest.approx(0.8)
    assert calculate_quality_rate(0, 0) == 1.0
    assert calculate_quality_rate(12, 10) == 1.0


def test_performance_rate_capped():
    assert calculate_performance_rate(1000, 60, 60, 1) == 1.5


def test_performance_rate_without_operating_time():
    assert calculate_performance_rate(10, 0, 60, 1) == 0.0


def test_degenerate_inputs_never_produce_nan():
    config = KpiConfig(cycle_time_per_unit=0, units_per_cycle=0, downtime_budget=0)
    metrics = compute_metrics(config, _inputs(planned=0, raw=0, net=0, downtime=0, heads=0))
    assert all(math.isfinite(value) for value in metrics.to_dict().values())
    assert metrics.productivity_ratio == 0.0
    assert metrics.quality_rate == 1.0


def test_non_finite_inputs_coerced():
    metrics = compute_metrics(KpiConfig(), _inputs(planned=float("nan"), raw=math.inf, net=math.inf))
    assert all(math.isfinite(value) for value in metrics.to_dict().values())


def test_metrics_record_views():
    metrics = compute_metrics(KpiConfig(target_basis="hour", target_rate=10, actual_output=15), _inputs())
    assert set(metrics.to_percentage_dict()) == set(RATIO_FIELDS)
    assert metrics.to_percentage_dict()["productivity_ratio"] == 75.0
    assert metrics.oee("cycle") == metrics.oee_cycle_base
    assert metrics.oee("target") == metrics.oee_target_base
    with pytest.raises(ValueError):
        metrics.oee("weekly")


def test_oee_baselines():
    cycle = oee_cycle_base(210, 60, 30, 0.9)
    assert cycle.availability == pytest.approx(240 / 270)
    assert cycle.performance == 1.0
    assert cycle.oee == pytest.approx(240 / 270 * 0.9)

    target = oee_target_base(480, 60, 30, actual_output=30, target_output=20, quality_rate=1.0)
    assert target.performance == 1.0
    assert target.oee == pytest.approx(510 / 540)

    no_target = oee_target_base(480, 60, 30, actual_output=30, target_output=0, quality_rate=1.0)
    assert no_target.performance == 0.0
    assert no_target.oee == 0.0


def test_empty_window_uses_fallback():
    assert availability_for_window(0, 0, 0) == 0.0
    target = oee_target_base(0, 0, 0, 10, 10, 1.0, fallback_availability=0.5)
    assert target.availability == 0.5


@given(
    planned=st.floats(0, 1000),
    net=st.floats(0, 1000),
    downtime=st.floats(0, 1000),
    budget=st.floats(0, 200),
    cycle_time=st.one_of(st.just(0.0), st.floats(1, 500)),
    actual_output=st.one_of(st.none(), st.floats(0, 1000)),
    good_output=st.one_of(st.none(), st.floats(0, 2000)),
    target_rate=st.one_of(st.none(), st.floats(0, 100)),
    context=st.sampled_from(list(TimeContext)),
)
def test_ratios_stay_in_unit_range(
    planned, net, downtime, budget, cycle_time, actual_output, good_output, target_rate, context
):
    config = KpiConfig(
        time_context=context,
        cycle_time_per_unit=cycle_time,
        downtime_budget=budget,
        actual_output=actual_output,
        good_output=good_output,
        target_rate=target_rate,
    )
    metrics = compute_metrics(config, _inputs(planned=planned, raw=net, net=net, downtime=downtime))

    for name in ("availability", "availability_cycle", "availability_target", "quality_rate",
                 "oee_cycle_base", "oee_target_base", "utilization", "takt_adherence"):
        assert 0.0 <= getattr(metrics, name) <= 1.0, name
    assert 0.0 <= metrics.performance_rate <= 1.5


def test_compute_production_metrics(weld_head):
    metrics = compute_production_metrics([weld_head], KpiConfig())
    assert metrics.planned_time == 480.0
    assert metrics.actual_time == 460.0
    assert metrics.productivity_ratio == pytest.approx(460 / 480)


def test_output_gap_without_target():
    assert calculate_output_gap(15, 0) == (15.0, 0.0)


def test_output_gap_with_tiny_target_stays_finite():
    gap, gap_pct = calculate_output_gap(1, 1e-310)
    assert gap == pytest.approx(1.0)
    assert math.isfinite(gap_pct)

    config = KpiConfig(target_basis="hour", target_rate=1e-310, actual_output=1)
    metrics = compute_metrics(config, _inputs())
    assert math.isfinite(metrics.gap_percentage)


def test_safe_math_helpers():
    assert safe_div(15, 20) == 0.75
    assert safe_div(15, 0) == 0.0
    assert safe_div(15, math.nan) == 0.0
    assert clamp_number(None) == 0.0
    assert clamp_number(math.inf, default=1.0) == 1.0
    assert clamp_number("3.5") == 3.5
    assert clamp_number(Decimal("2.25")) == 2.25
    assert clamp_number(True) == 0.0
    assert cap(2.0, 1.5) == 1.5
    assert cap(-1.0, 1.0) == 0.0
    assert cap(-1.0, 1.0, lower=None) == -1.0


@pytest.mark.parametrize(
    "ratio, status",
    [(0, "no-data"), (1.25, "excellent"), (1.0, "good"), (0.85, "fair"), (0.6, "poor"), (0.2, "critical")],
)
def test_classify_productivity(ratio, status):
    assert classify_productivity(ratio).status == status


def test_classify_efficiency_and_oee():
    assert classify_efficiency(0.96).status == "excellent"
    assert classify_efficiency(0.4).status == "critical"
    assert classify_oee(0.9) == "World Class"
    assert classify_oee(0.7) == "Typical"
    assert classify_oee(0.3) == "Needs Improvement"
