import pytest

from core.time_windows.models import build_head


@pytest.fixture
def weld_head():
    """480-minute head: overlapping weld intervals and one 20-minute break."""
    return build_head(
        "Head 1",
        480,
        [
            ("Weld", [(0, 200), (150, 300)], False),
            ("Break", [(100, 120)], True),
        ],
    )


@pytest.fixture
def two_heads(weld_head):
    second = build_head(
        "Head 2",
        360,
        [("Assembly", [(0, 180), (200, 360)], False)],
        downtime_items=[("setup", 180, 195)],
    )
    first = build_head(
        weld_head.name,
        weld_head.total_duration,
        [("Weld", [(0, 200), (150, 300)], False), ("Break", [(100, 120)], True)],
        downtime_items=[("material", 300, 310)],
    )
    return [first, second]
