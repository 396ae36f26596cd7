import logging

import pytest
from hypothesis import given, strategies as st

from core.calculations.durations import (
    DURATION_COLUMNS,
    aggregate_production,
    channel_durations,
    durations_dataframe,
    head_durations,
)
from core.time_windows.algebra import merge_intervals
from core.time_windows.models import Channel, TimeInterval, build_head


def test_channel_triple_for_weld_head(weld_head):
    summary = head_durations(weld_head)
    weld = summary.channels[0]

    assert (weld.raw, weld.merged, weld.net) == (350.0, 300.0, 280.0)
    assert weld.net_intervals == (TimeInterval(0, 100), TimeInterval(120, 300))
    assert weld.status == "Cut"


def test_exclusion_channel_is_not_cut_by_itself(weld_head):
    cutoff = head_durations(weld_head).channels[1]
    assert cutoff.is_exclusion
    assert cutoff.net == cutoff.merged == 20.0
    assert cutoff.status == "Full"


def test_head_totals(weld_head):
    summary = head_durations(weld_head)
    assert summary.raw_total == 350.0
    assert summary.merged_total == 300.0
    assert summary.net_total == 280.0
    assert summary.actual_total == 280.0
    assert summary.exclusion_duration == 20.0
    assert summary.running_duration == 460.0
    assert summary.downtime == 0.0
    assert summary.out_of_bounds_count == 0


def test_actual_total_counts_cross_channel_overlap_once():
    head = build_head("Head", 200, [("A", [(0, 100)], False), ("B", [(50, 150)], False)])
    summary = head_durations(head)
    assert summary.net_total == 200.0
    assert summary.actual_total == 150.0
    assert summary.overlap_minutes == 50.0


def test_running_duration_never_negative():
    head = build_head("Short", 60, [("Work", [(0, 30)], False), ("Break", [(0, 100)], True)])
    summary = head_durations(head)
    assert summary.exclusion_duration == 60.0
    assert summary.running_duration == 0.0
    assert summary.net_total == 0.0


def test_head_without_activity_channels():
    head = build_head("Idle", 120, [("Break", [(10, 20)], True)])
    summary = head_durations(head)
    assert summary.raw_total == summary.net_total == summary.actual_total == 0.0
    assert summary.running_duration == 110.0


def test_out_of_bounds_intervals_counted_and_logged(caplog):
    head = build_head("Head", 100, [("Work", [(90, 120)], False)])
    with caplog.at_level(logging.WARNING):
        summary = head_durations(head)
    assert summary.out_of_bounds_count == 1
    assert summary.raw_total == 30.0
    assert "outside" in caplog.text


def test_downtime_items_summed(two_heads):
    assert head_durations(two_heads[0]).downtime == 10.0
    assert head_durations(two_heads[1]).downtime == 15.0


def test_aggregate_production_averages_heads(two_heads):
    production = aggregate_production(two_heads)
    assert production.heads_count == 2
    assert production.actual_raw_time == pytest.approx(420.0)
    assert production.actual_net_time == pytest.approx((460.0 + 360.0) / 2)
    assert production.planned_time == pytest.approx(420.0)
    assert production.downtime == pytest.approx(25.0)


def test_aggregate_production_overrides(two_heads):
    production = aggregate_production(two_heads, planned_time=500, downtime=5)
    assert production.planned_time == 500.0
    assert production.downtime == 5.0


def test_aggregate_production_without_heads():
    production = aggregate_production([])
    assert production.heads_count == 0
    assert production.actual_raw_time == 0.0
    assert production.actual_net_time == 0.0
    assert production.planned_time == 0.0


def test_durations_dataframe(two_heads):
    df = durations_dataframe(two_heads)
    assert list(df.columns) == DURATION_COLUMNS
    assert len(df) == 3
    weld = df[(df["head"] == "Head 1") & (df["channel"] == "Weld")].iloc[0]
    assert weld["net_minutes"] == 280.0
    assert weld["status"] == "Cut"


def test_durations_dataframe_empty():
    df = durations_dataframe([])
    assert df.empty
    assert list(df.columns) == DURATION_COLUMNS


pairs = st.lists(
    st.tuples(st.integers(0, 400), st.integers(1, 80)).map(lambda p: (p[0], p[0] + p[1])),
    max_size=10,
)


@given(pairs, pairs)
def test_net_within_merged_within_raw(intervals, exclusions):
    durations = channel_durations(Channel("Work", tuple(intervals)), merge_intervals(exclusions))
    assert durations.net <= durations.merged <= durations.raw
