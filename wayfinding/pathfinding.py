"""A* route search over the floor-qualified label graph.

Purpose:
- Compute minimum-cost label routes between two places, possibly on
  different floors.
- Keep routes out of unrelated stores, private store aisles and connectors
  the active travel mode excludes.

Usage example:
    >>> from wayfinding.pathfinding import find_route
    >>> from wayfinding.models import TravelMode
    >>> find_route(graph, "ground_path_h&m", "1st_path_uniqlo", TravelMode.ESCALATOR)
"""

from __future__ import annotations

import heapq
import logging
import math
import threading

from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.errors import (
    MissingGraphLabelError,
    NoRouteFoundError,
    PathReconstructionError,
    SearchCancelledError,
)
from wayfinding.models import GlobalGraph, NodeKind, RoutableNode, RoutePoint, TravelMode

logger = logging.getLogger(__name__)


def _heuristic(node: RoutableNode, goal: RoutableNode) -> float:
    """Straight-line distance while on the goal's floor, zero elsewhere."""
    if node.floor is not goal.floor:
        return 0.0
    return math.hypot(goal.x - node.x, goal.y - node.y)


class _SearchContext:
    """Per-request admission state for one A* run."""

    __slots__ = ("graph", "start", "goal", "mode", "config", "endpoints", "used_storepaths")

    def __init__(
        self,
        graph: GlobalGraph,
        start: RoutableNode,
        goal: RoutableNode,
        mode: TravelMode,
        config: RoutingConfig,
    ) -> None:
        self.graph = graph
        self.start = start
        self.goal = goal
        self.mode = mode
        self.config = config
        self.endpoints = start.identities | goal.identities
        self.used_storepaths: set[tuple[object, str]] = set()

    def admits(self, node: RoutableNode) -> bool:
        """Return True when `node` may be entered as a hop of this route."""
        if node.label in (self.start.label, self.goal.label):
            return True

        if node.connector_type is self.mode.excluded_connector:
            return False

        if node.kind is NodeKind.BOUNDARY_POINT:
            return False

        if node.kind is NodeKind.JUNCTION:
            return self._junction_serves_endpoint(node)

        if node.storepath is not None:
            return self._storepath_allowed(node)
        if "storepath" in node.local_label.lower():
            # Storepath label without a group number.
            return False

        if node.kind is NodeKind.RECT_CORNER and node.parent_label:
            return node.parent_label in self.endpoints

        return True

    def _junction_serves_endpoint(self, node: RoutableNode) -> bool:
        for neighbor in node.neighbors:
            other = self.graph.get(neighbor.label)
            if other is not None and other.kind is NodeKind.BOUNDARY_POINT:
                return not other.parent_label or other.parent_label in self.endpoints
        return True

    def _storepath_allowed(self, node: RoutableNode) -> bool:
        key = (node.floor, node.storepath)
        if key in self.used_storepaths:
            return True

        if len(self.used_storepaths) > self.config.storepath_cap:
            logger.debug("Rejecting storepath %s: %d groups already in use", node.storepath, len(self.used_storepaths))
            return False

        radius = self.config.storepath_proximity
        for endpoint in self.graph.storepath_endpoints(node.floor, node.storepath):
            if endpoint.distance_to(self.start) < radius or endpoint.distance_to(self.goal) < radius:
                self.used_storepaths.add(key)
                return True

        logger.debug("Rejecting storepath %s: no endpoint near start or goal", node.storepath)
        return False


def _reconstruct(graph: GlobalGraph, came_from: dict[str, str], current: str) -> list[RoutePoint]:
    labels = [current]
    while current in came_from:
        current = came_from[current]
        labels.append(current)
    labels.reverse()

    path: list[RoutePoint] = []
    for label in labels:
        node = graph.get(label)
        if node is None:
            raise PathReconstructionError(label)
        path.append(RoutePoint(node.x, node.y, label))
    return path


def astar_by_label(
    graph: GlobalGraph,
    start_label: str,
    goal_label: str,
    mode: TravelMode = TravelMode.ESCALATOR,
    config: RoutingConfig | None = None,
    cancel_event: threading.Event | None = None,
) -> list[RoutePoint]:
    """Compute the cheapest admissible route via A*.

    Args:
        graph: Floor-qualified routing graph.
        start_label: Qualified label of the start node.
        goal_label: Qualified label of the goal node.
        mode: Travel mode; decides which connector type is excluded.
        config: Routing thresholds, defaults to the process config.
        cancel_event: When set, the search stops at the next expansion.

    Returns:
        Route points from start to goal. Empty list if no route exists.

    Raises:
        MissingGraphLabelError: If start or goal is not in the graph.
        PathReconstructionError: If a predecessor label is not in the graph.
        SearchCancelledError: If `cancel_event` is set during the search.
    """
    if start_label not in graph:
        raise MissingGraphLabelError(start_label, role="start")
    if goal_label not in graph:
        raise MissingGraphLabelError(goal_label, role="goal")

    cfg = config or get_routing_config()
    mode = TravelMode(mode)
    start = graph[start_label]
    goal = graph[goal_label]
    context = _SearchContext(graph, start, goal, mode, cfg)

    open_heap: list[tuple[float, int, str]] = []
    counter = 0
    heapq.heappush(open_heap, (_heuristic(start, goal), counter, start_label))

    came_from: dict[str, str] = {}
    g_score: dict[str, float] = {start_label: 0.0}
    closed: set[str] = set()

    while open_heap:
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelledError(f"Search from '{start_label}' to '{goal_label}' was cancelled")

        _, _, current = heapq.heappop(open_heap)

        if current in closed:
            continue

        if current == goal_label:
            return _reconstruct(graph, came_from, current)

        closed.add(current)
        node = graph.get(current)
        if node is None:
            continue

        for neighbor in node.neighbors:
            if neighbor.label in closed:
                continue
            other = graph.get(neighbor.label)
            if other is None or not context.admits(other):
                continue

            tentative_g = g_score[current] + neighbor.cost
            if tentative_g < g_score.get(neighbor.label, float("inf")):
                came_from[neighbor.label] = current
                g_score[neighbor.label] = tentative_g
                counter += 1
                heapq.heappush(open_heap, (tentative_g + _heuristic(other, goal), counter, neighbor.label))

    return []


def find_route(
    graph: GlobalGraph,
    start_label: str,
    goal_label: str,
    mode: TravelMode = TravelMode.ESCALATOR,
    config: RoutingConfig | None = None,
    cancel_event: threading.Event | None = None,
) -> list[RoutePoint]:
    """Like `astar_by_label`, but an unreachable goal raises instead.

    Raises:
        NoRouteFoundError: If the frontier is exhausted before the goal.
    """
    path = astar_by_label(graph, start_label, goal_label, mode, config, cancel_event)
    if not path:
        raise NoRouteFoundError(start_label, goal_label)

    logger.debug("Route %s -> %s: %d points", start_label, goal_label, len(path))
    return path

