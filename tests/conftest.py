"""Pytest global fixtures and test isolation hooks."""

from __future__ import annotations

from typing import Any, Callable, Iterable

import pytest

from wayfinding.api import STATE
from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.floor_unifier import build_global_graph
from wayfinding.floors import Floor
from wayfinding.models import FloorGraph, GlobalGraph, RawEdge, RawNode, RoutePoint


def make_floor_graph(nodes: Iterable[tuple], edges: Iterable[tuple[str, str]] = ()) -> FloorGraph:
    """Nodes are `(id, x, y)` or `(id, x, y, {extra RawNode fields})`."""
    raw_nodes = []
    for entry in nodes:
        node_id, x, y, *rest = entry
        extra: dict[str, Any] = rest[0] if rest else {}
        raw_nodes.append(RawNode(id=node_id, x=float(x), y=float(y), **extra))
    return FloorGraph(nodes=tuple(raw_nodes), edges=tuple(RawEdge(s, t) for s, t in edges))


@pytest.fixture(autouse=True)
def reset_routing_state() -> None:
    """Reset in-memory API state and cached env config before each test."""
    STATE.graph = None
    STATE.failed_floors = {}
    get_routing_config.cache_clear()


@pytest.fixture()
def floor_graph() -> Callable[..., FloorGraph]:
    """Factory for raw floor graphs from compact node/edge specs."""
    return make_floor_graph


@pytest.fixture()
def default_config() -> RoutingConfig:
    return RoutingConfig()


@pytest.fixture()
def no_split_config() -> RoutingConfig:
    """Config that never inserts junctions, for hand-laid test geometry."""
    return RoutingConfig(split_threshold=0.0)


@pytest.fixture()
def abc_graph(default_config: RoutingConfig) -> GlobalGraph:
    """Single floor: A(0,0) - B(10,0) - C(10,10)."""
    floor = make_floor_graph([("A", 0, 0), ("B", 10, 0), ("C", 10, 10)], [("A", "B"), ("B", "C")])
    return build_global_graph({Floor.GROUND: floor}, connector_table={}, config=default_config)


@pytest.fixture()
def route_points() -> Callable[[GlobalGraph, Iterable[str]], list[RoutePoint]]:
    """Build a RoutePoint list from qualified labels of `graph`."""

    def build(graph: GlobalGraph, labels: Iterable[str]) -> list[RoutePoint]:
        return [RoutePoint(graph[label].x, graph[label].y, label) for label in labels]

    return build
