"""Domain types for raw floor graphs, routable graphs and route output."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, NamedTuple

from shapely import STRtree, box
from shapely.geometry import Point

from wayfinding.config import RoutingConfig
from wayfinding.connectors import ConnectorType
from wayfinding.floors import Floor


class NodeKind(str, Enum):
    """Closed set of geometric roles a graph node can play."""

    PATH_POINT = "path-point"
    CENTER = "center"
    BOUNDARY_POINT = "boundary-point"
    RECT_CORNER = "rect-corner"
    JUNCTION = "junction"

    @classmethod
    def from_type_tag(cls, tag: str | None) -> "NodeKind | None":
        """Map a raw asset type tag to a kind; None when the tag is unknown."""
        return _TYPE_TAGS.get((tag or "").strip().lower())


_TYPE_TAGS: dict[str, NodeKind] = {
    "path-point": NodeKind.PATH_POINT,
    "ellipse-center": NodeKind.CENTER,
    "circle-center": NodeKind.CENTER,
    "ellipse-point": NodeKind.BOUNDARY_POINT,
    "circle-point": NodeKind.BOUNDARY_POINT,
    "rect-corner": NodeKind.RECT_CORNER,
    "junction": NodeKind.JUNCTION,
}


class TravelMode(str, Enum):
    """Coarse mode switch deciding which vertical connectors are usable."""

    ESCALATOR = "escalator"
    ELEVATOR = "elevator"

    @property
    def excluded_connector(self) -> ConnectorType:
        if self is TravelMode.ESCALATOR:
            return ConnectorType.ELEVATOR
        return ConnectorType.ESCALATOR

    def speed(self, config: RoutingConfig) -> float:
        """Walking speed in meters per second for this mode."""
        if self is TravelMode.ESCALATOR:
            return config.escalator_speed
        return config.elevator_speed


@dataclass(frozen=True, slots=True)
class RawNode:
    """Node as declared by a floor asset."""

    id: str
    x: float
    y: float
    type: str = "path-point"
    rx: float | None = None
    ry: float | None = None
    angle: float | None = None
    label: str | None = None
    parent_label: str | None = None
    connection_id: str | None = None

    @property
    def routing_label(self) -> str:
        return self.label or self.id


@dataclass(frozen=True, slots=True)
class RawEdge:
    """Undirected walkable segment between two raw node ids."""

    source: str
    target: str
    type: str = "line"


@dataclass(frozen=True, slots=True)
class FloorGraph:
    """One floor's raw vector graph."""

    nodes: tuple[RawNode, ...]
    edges: tuple[RawEdge, ...]
    metadata: Mapping[str, Any] = field(default_factory=dict)


class Neighbor(NamedTuple):
    label: str
    cost: float
    floor_change: bool = False


@dataclass(frozen=True, slots=True)
class RoutableNode:
    """Label-addressed node with resolved adjacency."""

    node_id: str
    label: str
    x: float
    y: float
    kind: NodeKind = NodeKind.PATH_POINT
    type_tag: str = "path-point"
    raw_label: str | None = None
    parent_label: str | None = None
    floor: Floor | None = None
    connector_id: str | None = None
    connector_type: ConnectorType | None = None
    storepath: str | None = None
    neighbors: tuple[Neighbor, ...] = ()

    @property
    def point(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def local_label(self) -> str:
        """Label before floor qualification."""
        return self.raw_label or self.label

    @property
    def identities(self) -> frozenset[str]:
        """Every name this node can be referred to by."""
        return frozenset(v for v in (self.label, self.raw_label, self.parent_label) if v)

    def distance_to(self, other: "RoutableNode") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


class RoutePoint(NamedTuple):
    x: float
    y: float
    label: str

    @property
    def point(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class DirectionStep:
    """One human-readable navigation instruction with route metrics."""

    x: float
    y: float
    icon: str
    description: str
    is_floor_change: bool = False
    from_floor: Floor | None = None
    to_floor: Floor | None = None
    distance_from_start: float = 0.0
    time_from_start: float = 0.0
    segment_distance: float = 0.0
    path_index: int = 0


@dataclass(slots=True)
class DirectionsResult:
    steps: list[DirectionStep]
    total_distance: float
    total_time: float


@dataclass(frozen=True, slots=True)
class RouteRequest:
    """Everything a route computation depends on besides the graph."""

    start: str
    end: str
    mode: TravelMode = TravelMode.ESCALATOR


@dataclass(slots=True)
class RoutePlan:
    request: RouteRequest
    raw_path: list[RoutePoint]
    path: list[RoutePoint]
    directions: DirectionsResult


@dataclass(frozen=True, slots=True)
class Location:
    """Human-facing place and the qualified label routing starts from."""

    name: str
    floor: Floor
    label: str


class _LandmarkIndex:
    """Spatial index over one floor's store boundary points."""

    __slots__ = ("_nodes", "_tree")

    def __init__(self, nodes: list[RoutableNode]) -> None:
        self._nodes = tuple(nodes)
        self._tree = STRtree([Point(n.x, n.y) for n in self._nodes])

    def within(self, x: float, y: float, radius: float) -> list[RoutableNode]:
        hits = self._tree.query(box(x - radius, y - radius, x + radius, y + radius))
        out = []
        for idx in sorted(int(i) for i in hits):
            node = self._nodes[idx]
            if math.hypot(node.x - x, node.y - y) <= radius:
                out.append(node)
        return out


class GlobalGraph(Mapping[str, RoutableNode]):
    """Read-only, floor-qualified routing graph shared by all requests."""

    def __init__(
        self,
        nodes: Mapping[str, RoutableNode],
        failed_floors: Mapping[Floor, str] | None = None,
    ) -> None:
        self._nodes: Mapping[str, RoutableNode] = MappingProxyType(dict(nodes))
        self.failed_floors: Mapping[Floor, str] = MappingProxyType(dict(failed_floors or {}))

        groups: dict[tuple[Floor | None, str], list[RoutableNode]] = {}
        storepaths: dict[tuple[Floor | None, str], list[RoutableNode]] = {}
        landmarks: dict[Floor | None, list[RoutableNode]] = {}

        for node in self._nodes.values():
            if node.parent_label:
                groups.setdefault((node.floor, node.parent_label), []).append(node)
            if node.storepath and "point_" in node.local_label:
                storepaths.setdefault((node.floor, node.storepath), []).append(node)
            if node.kind is NodeKind.BOUNDARY_POINT and node.parent_label:
                landmarks.setdefault(node.floor, []).append(node)

        self._groups = {key: tuple(value) for key, value in groups.items()}
        self._storepaths = {key: tuple(value) for key, value in storepaths.items()}
        self._landmarks = {floor: _LandmarkIndex(value) for floor, value in landmarks.items()}

    def __getitem__(self, label: str) -> RoutableNode:
        return self._nodes[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def floors(self) -> list[Floor]:
        present = {node.floor for node in self._nodes.values() if node.floor is not None}
        return sorted(present, key=lambda floor: floor.level)

    def group_nodes(self, floor: Floor | None, parent_label: str | None) -> tuple[RoutableNode, ...]:
        """Nodes belonging to one logical place/segment on one floor."""
        if not parent_label:
            return ()
        return self._groups.get((floor, parent_label), ())

    def segment_endpoints(
        self, floor: Floor | None, parent_label: str | None
    ) -> tuple[RoutableNode, RoutableNode] | None:
        """Declared `_point_0` / `_point_1` nodes of a path segment."""
        point0 = point1 = None
        for node in self.group_nodes(floor, parent_label):
            if point0 is None and "_point_0" in node.local_label:
                point0 = node
            elif point1 is None and "_point_1" in node.local_label:
                point1 = node
        if point0 is None or point1 is None:
            return None
        return point0, point1

    def storepath_endpoints(self, floor: Floor | None, group: str) -> tuple[RoutableNode, ...]:
        return self._storepaths.get((floor, group), ())

    def landmarks_near(self, floor: Floor | None, x: float, y: float, radius: float) -> list[RoutableNode]:
        """Store boundary points on `floor` within `radius` of `(x, y)`."""
        index = self._landmarks.get(floor)
        if index is None:
            return []
        return index.within(x, y, radius)

    def locations(self) -> list[Location]:
        """Routable places: store centers and rectangle-shaped facilities."""
        found: dict[tuple[Floor, str], str] = {}
        for node in self._nodes.values():
            if node.floor is None or node.kind not in (NodeKind.CENTER, NodeKind.RECT_CORNER):
                continue
            name = node.parent_label or node.local_label
            key = (node.floor, name)
            direct = node.floor.qualify(name)
            if direct in self._nodes:
                found[key] = direct
            else:
                found.setdefault(key, node.label)
        return [
            Location(name=name, floor=floor, label=label)
            for (floor, name), label in sorted(found.items(), key=lambda item: (item[0][1], item[0][0].level))
        ]
