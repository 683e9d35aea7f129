"""Unit tests for wayfinding.utils."""

from __future__ import annotations

import pytest

from wayfinding.floors import Floor
from wayfinding.models import DirectionStep, RoutePoint
from wayfinding.utils import format_distance, format_time, step_to_dict, to_serializable_path


def test_to_serializable_path_returns_expected_shape() -> None:
    """Route points should serialize to plain dicts."""
    path = [RoutePoint(1, 2, "ground_path_a"), RoutePoint(3.5, 4, "ground_path_b")]

    assert to_serializable_path(path) == [
        {"x": 1.0, "y": 2.0, "label": "ground_path_a"},
        {"x": 3.5, "y": 4.0, "label": "ground_path_b"},
    ]


def test_step_to_dict_includes_floors_and_display_text() -> None:
    """Step payloads should carry floor keys and display text."""
    step = DirectionStep(
        x=10,
        y=0,
        icon="floor-change",
        description="Change floors from Ground Floor to 1st Floor",
        is_floor_change=True,
        from_floor=Floor.GROUND,
        to_floor=Floor.FIRST,
        distance_from_start=12.3456,
        time_from_start=75.0,
        segment_distance=2.0,
        path_index=3,
    )

    payload = step_to_dict(step)

    assert payload["from_floor"] == "ground"
    assert payload["to_floor"] == "1st"
    assert payload["distance_from_start"] == 12.346
    assert payload["distance_text"] == "12m"
    assert payload["time_text"] == "1min 15sec"
    assert payload["path_index"] == 3


@pytest.mark.parametrize(
    ("meters", "expected"),
    [(0.5, "50cm"), (12.4, "12m"), (1500, "1.5km")],
)
def test_format_distance(meters: float, expected: str) -> None:
    """Distances should pick the readable unit."""
    assert format_distance(meters) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(10, "< 30 sec"), (45, "< 1 min"), (120, "2 min"), (135, "2min 15sec"), (3720, "1h 2min")],
)
def test_format_time(seconds: float, expected: str) -> None:
    """Durations should use the coarse display buckets."""
    assert format_time(seconds) == expected


def test_formatters_reject_negative_values() -> None:
    """Negative distances and durations should be rejected."""
    with pytest.raises(ValueError):
        format_distance(-1)
    with pytest.raises(ValueError):
        format_time(-0.5)
