"""Utility helpers shared across wayfinding modules.

Purpose:
- Convert route points and direction steps to JSON-safe payloads.
- Format distances and durations for display.
"""

from __future__ import annotations

from typing import Any, Iterable

from wayfinding.models import DirectionStep, RoutePoint


def to_serializable_path(path: Iterable[RoutePoint]) -> list[dict[str, Any]]:
    """Convert route points to JSON-friendly dictionary objects."""
    return [{"x": float(p.x), "y": float(p.y), "label": p.label} for p in path]


def step_to_dict(step: DirectionStep) -> dict[str, Any]:
    """Serialize a DirectionStep, including its display strings."""
    return {
        "x": float(step.x),
        "y": float(step.y),
        "icon": step.icon,
        "description": step.description,
        "is_floor_change": step.is_floor_change,
        "from_floor": step.from_floor.key if step.from_floor else None,
        "to_floor": step.to_floor.key if step.to_floor else None,
        "distance_from_start": round(step.distance_from_start, 3),
        "time_from_start": round(step.time_from_start, 3),
        "segment_distance": round(step.segment_distance, 3),
        "path_index": step.path_index,
        "distance_text": format_distance(step.distance_from_start),
        "time_text": format_time(step.time_from_start),
    }


def format_distance(meters: float) -> str:
    """Render meters as `35cm`, `12m` or `1.2km`."""
    if meters < 0:
        raise ValueError("meters must be >= 0")
    if meters < 1.0:
        return f"{int(meters * 100)}cm"
    if meters < 1000:
        return f"{meters:.0f}m"
    return f"{meters / 1000:.1f}km"


def format_time(seconds: float) -> str:
    """Render a walking duration the way the route summary shows it."""
    if seconds < 0:
        raise ValueError("seconds must be >= 0")
    total_minutes = int(seconds // 60)
    remaining = int(seconds % 60)

    if total_minutes < 1:
        return "< 30 sec" if remaining < 30 else "< 1 min"
    if total_minutes < 60:
        return f"{total_minutes}min {remaining}sec" if remaining > 0 else f"{total_minutes} min"
    return f"{total_minutes // 60}h {total_minutes % 60}min"
