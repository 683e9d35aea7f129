"""Removal of spurious detours through neighbouring aisle segments.

A route can run A -> B -> C where B only appears because its ends sit almost
on top of the ends of A and C. Such a B is dropped and A is spliced to C.
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple, Sequence

from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.models import GlobalGraph, RoutableNode, RoutePoint

logger = logging.getLogger(__name__)


class _Segment(NamedTuple):
    start: int
    end: int
    parent_label: str | None


class _Connection(NamedTuple):
    a_end: int
    target: str
    distance: float


def _parent_of(graph: GlobalGraph, point: RoutePoint) -> str | None:
    node = graph.get(point.label)
    return node.parent_label if node is not None else None


def _segments(graph: GlobalGraph, path: Sequence[RoutePoint]) -> list[_Segment]:
    """Split `path` into maximal runs sharing one parent label."""
    out: list[_Segment] = []
    start = 0
    for idx in range(1, len(path) + 1):
        if idx == len(path) or _parent_of(graph, path[idx]) != _parent_of(graph, path[start]):
            out.append(_Segment(start, idx - 1, _parent_of(graph, path[start])))
            start = idx
    return out


def _distance(a: RoutableNode, b: RoutableNode) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def is_spurious_detour(
    graph: GlobalGraph,
    first: RoutableNode,
    middle: RoutableNode,
    last: RoutableNode,
    config: RoutingConfig | None = None,
) -> bool:
    """Decide whether the segment of `middle` is a detour between `first` and `last`.

    Each argument is any node of its segment; the segment's declared
    `_point_0` / `_point_1` endpoints are looked up in the graph.
    """
    cfg = config or get_routing_config()
    ends_a = graph.segment_endpoints(first.floor, first.parent_label)
    ends_b = graph.segment_endpoints(middle.floor, middle.parent_label)
    ends_c = graph.segment_endpoints(last.floor, last.parent_label)
    if ends_a is None or ends_b is None or ends_c is None:
        return False

    connections = [
        _Connection(i, target, _distance(a_end, other))
        for i, a_end in enumerate(ends_a)
        for target, group in (("B", ends_b), ("C", ends_c))
        for other in group
    ]
    close = [c for c in connections if c.distance < cfg.cleaner_proximity]

    for a_end in (0, 1):
        to_b = [c.distance for c in close if c.a_end == a_end and c.target == "B"]
        to_c = [c.distance for c in close if c.a_end == a_end and c.target == "C"]
        if any(abs(db - dc) < cfg.cleaner_similarity for db in to_b for dc in to_c):
            return True

    def best(a_end: int, target: str | None) -> float | None:
        found = [c.distance for c in close if c.a_end == a_end and (target is None or c.target == target)]
        return min(found) if found else None

    # A bridges C -> B, or B -> C, with comparable gaps at both of its ends.
    bridges = ((best(0, "C"), best(1, "B")), (best(0, None), best(1, "C")))
    return any(
        near is not None and far is not None and abs(near - far) < cfg.cleaner_similarity
        for near, far in bridges
    )


def clean_path(
    path: Sequence[RoutePoint],
    graph: GlobalGraph,
    config: RoutingConfig | None = None,
) -> list[RoutePoint]:
    """Drop detour segments from a raw route.

    The result keeps the first and last points of `path` and never repeats a
    label.
    """
    if len(path) <= 2:
        return list(path)

    cfg = config or get_routing_config()
    segments = _segments(graph, path)
    kept: list[RoutePoint] = []

    i = 0
    while i < len(segments):
        seg_a = segments[i]
        kept.extend(path[seg_a.start : seg_a.end + 1])

        if i + 2 < len(segments):
            seg_b, seg_c = segments[i + 1], segments[i + 2]
            labels = (seg_a.parent_label, seg_b.parent_label, seg_c.parent_label)
            if all(labels) and len(set(labels)) == 3 and is_spurious_detour(
                graph,
                graph[path[seg_a.start].label],
                graph[path[seg_b.start].label],
                graph[path[seg_c.start].label],
                cfg,
            ):
                logger.debug("Dropping detour segment '%s' between '%s' and '%s'", labels[1], labels[0], labels[2])
                i += 2
                continue
        i += 1

    final: list[RoutePoint] = []
    seen: set[str] = set()
    for point in kept:
        if point.label not in seen:
            final.append(point)
            seen.add(point.label)

    last = path[-1]
    if final[-1].label != last.label:
        final = [p for p in final if p.label != last.label]
        final.append(last)
    return final
