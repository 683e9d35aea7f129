"""Turn-by-turn instruction synthesis for a cleaned route.

Purpose:
- Split a route by floor and announce every floor change.
- Turn changes of aisle/store along the route into exit, navigation and
  arrival instructions, naming nearby stores as landmarks.
- Annotate every instruction with cumulative distance and walking time.

Usage example:
    >>> from wayfinding.directions import synthesize_directions
    >>> result = synthesize_directions(path, graph, TravelMode.ESCALATOR)
    >>> [step.description for step in result.steps]
    ['Exit from the store and turn right', 'On your right should be Uniqlo']
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Sequence

from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.connectors import ConnectorType, connector_type_for
from wayfinding.errors import MissingGraphLabelError
from wayfinding.floors import Floor, level_difference
from wayfinding.models import (
    DirectionsResult,
    DirectionStep,
    GlobalGraph,
    NodeKind,
    RoutableNode,
    RoutePoint,
    TravelMode,
)

ICON_FLOOR_CHANGE = "floor-change"
ICON_STRAIGHT = "straight"

TURN_ANGLE = 45.0
BEAR_ANGLE = 30.0

Point = tuple[float, float]


class Turn(NamedTuple):
    icon: str
    exit_phrase: str
    approach_phrase: str


_RIGHT = Turn("turn-right", "turn right", "On your right should be")
_BEAR_RIGHT = Turn("bear-right", "bear right", "Slightly to your right should be")
_LEFT = Turn("turn-left", "turn left", "On your left should be")
_BEAR_LEFT = Turn("bear-left", "bear left", "Slightly to your left should be")
_STRAIGHT = Turn(ICON_STRAIGHT, "continue straight", "Ahead should be")


def classify_turn(angle: float) -> Turn:
    """Map a signed turn angle in degrees (positive = right) to a turn."""
    if angle >= TURN_ANGLE:
        return _RIGHT
    if angle >= BEAR_ANGLE:
        return _BEAR_RIGHT
    if angle <= -TURN_ANGLE:
        return _LEFT
    if angle <= -BEAR_ANGLE:
        return _BEAR_LEFT
    return _STRAIGHT


def turn_angle(p1: Point, p2: Point, p3: Point | None) -> float:
    """Signed change of heading at `p2`, normalized to [-180, 180].

    Map coordinates grow downward, so a positive angle is a right turn.
    """
    if p3 is None:
        return 0.0
    incoming = math.atan2(p2[1] - p1[1], p2[0] - p1[0])
    outgoing = math.atan2(p3[1] - p2[1], p3[0] - p2[0])
    diff = math.degrees(outgoing - incoming)
    if diff > 180:
        diff -= 360
    if diff < -180:
        diff += 360
    return diff


def format_landmark_name(raw_name: str | None) -> str:
    """Turn a place label into display text; empty for private aisles."""
    if not raw_name:
        return ""
    connector = connector_type_for(raw_name)
    if connector is ConnectorType.ESCALATOR:
        return "the Escalator"
    if connector is ConnectorType.ELEVATOR:
        return "the Elevator"

    name = raw_name
    for floor in Floor:
        name = name.replace(f"{floor.file_name}_", "")
    if "storepath" in name.lower():
        return ""

    words = name.replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def hop_distance(a: RoutableNode, b: RoutableNode, config: RoutingConfig) -> float:
    """Walking distance in meters between two consecutive route nodes."""
    if a.floor is not None and b.floor is not None and a.floor is not b.floor:
        return config.floor_change_distance * level_difference(a.floor, b.floor)
    return math.hypot(b.x - a.x, b.y - a.y) * config.distance_scale


@dataclass(slots=True)
class _Run:
    """Consecutive route points under one controlling label."""

    label: str
    indices: list[int]


class _FloorSegment(NamedTuple):
    floor: Floor | None
    start: int
    end: int


def _control_label(node: RoutableNode) -> str:
    return node.parent_label or node.local_label


def _entry_noun(node: RoutableNode, first_segment: bool) -> str:
    if first_segment:
        return "the store"
    if node.connector_type is ConnectorType.ESCALATOR:
        return "the Escalator"
    if node.connector_type is ConnectorType.ELEVATOR:
        return "the Elevator"
    return "the store"


class _Narrator:
    """Builds the steps of one route; holds per-route lookups and metrics."""

    def __init__(
        self,
        graph: GlobalGraph,
        path: Sequence[RoutePoint],
        nodes: list[RoutableNode],
        config: RoutingConfig,
        speed: float,
    ) -> None:
        self.graph = graph
        self.path = path
        self.nodes = nodes
        self.config = config
        self.speed = speed

        self.hops = [0.0] + [hop_distance(a, b, config) for a, b in zip(nodes, nodes[1:])]
        self.cumulative: list[float] = []
        total = 0.0
        for hop in self.hops:
            total += hop
            self.cumulative.append(total)

    @property
    def total_distance(self) -> float:
        return self.cumulative[-1] if self.cumulative else 0.0

    def make_step(self, anchor: Point, icon: str, description: str, index: int, **extra) -> DirectionStep:
        return DirectionStep(
            x=anchor[0],
            y=anchor[1],
            icon=icon,
            description=description,
            distance_from_start=self.cumulative[index],
            time_from_start=self.cumulative[index] / self.speed,
            segment_distance=self.hops[index],
            path_index=index,
            **extra,
        )

    def floor_segments(self) -> list[_FloorSegment]:
        segments: list[_FloorSegment] = []
        start = 0
        floor = self.nodes[0].floor
        for idx, node in enumerate(self.nodes[1:], start=1):
            if node.floor is not None and node.floor is not floor:
                segments.append(_FloorSegment(floor, start, idx - 1))
                start, floor = idx, node.floor
        segments.append(_FloorSegment(floor, start, len(self.nodes) - 1))
        return segments

    def runs(self, segment: _FloorSegment) -> list[_Run]:
        runs: list[_Run] = []
        for idx in range(segment.start, segment.end + 1):
            node = self.nodes[idx]
            if node.kind is NodeKind.JUNCTION and idx not in (segment.start, segment.end):
                continue
            label = _control_label(node)
            if runs and runs[-1].label == label:
                runs[-1].indices.append(idx)
            else:
                runs.append(_Run(label, [idx]))
        return runs

    def _group(self, floor: Floor | None, run: _Run) -> tuple[RoutableNode, ...]:
        return self.graph.group_nodes(floor, run.label) or tuple(self.nodes[i] for i in run.indices)

    @staticmethod
    def _closest_pair(
        first: Sequence[RoutableNode], second: Sequence[RoutableNode]
    ) -> tuple[float, RoutableNode, RoutableNode] | None:
        best: tuple[float, RoutableNode, RoutableNode] | None = None
        for a in first:
            for b in second:
                if a.label == b.label:
                    continue
                d = a.distance_to(b)
                if best is None or d < best[0]:
                    best = (d, a, b)
        return best

    def collapse_micro_intersections(self, floor: Floor | None, runs: list[_Run], r: int) -> None:
        """Fold a run squeezed between two runs whose ends all nearly touch."""
        while r + 2 < len(runs):
            groups = [self.graph.group_nodes(floor, run.label) for run in runs[r : r + 3]]
            if not all(groups):
                return
            pairs = [
                self._closest_pair(groups[0], groups[1]),
                self._closest_pair(groups[1], groups[2]),
                self._closest_pair(groups[0], groups[2]),
            ]
            if any(p is None for p in pairs):
                return
            if sum(p[0] for p in pairs) >= self.config.micro_intersection_threshold:
                return

            del runs[r + 1]
            if r + 1 < len(runs) and runs[r + 1].label == runs[r].label:
                runs[r].indices.extend(runs.pop(r + 1).indices)

    def junction(self, floor: Floor | None, prev: _Run, nxt: _Run, end: int) -> tuple[Point, Point, Point | None]:
        """Incoming start, junction and outgoing end points of a run change."""
        prev_nodes, next_nodes = self._group(floor, prev), self._group(floor, nxt)
        found = self._closest_pair(prev_nodes, next_nodes)
        if found is not None:
            _, joint, entry = found
            before = next((n for n in prev_nodes if n.label != joint.label), None)
            after = next((n for n in next_nodes if n.label != entry.label), None)
            if before is not None and after is not None:
                return before.point, joint.point, after.point

        i = nxt.indices[0]
        p3 = self.path[i + 1].point if i + 1 <= end else None
        return self.path[i - 1].point, self.path[i].point, p3

    def nearest_index(self, point: Point, segment: _FloorSegment) -> int:
        return min(
            range(segment.start, segment.end + 1),
            key=lambda k: math.hypot(self.path[k].x - point[0], self.path[k].y - point[1]),
        )

    def landmark(
        self,
        floor: Floor | None,
        near: Point,
        on_path: set[str],
        used: list[str],
    ) -> tuple[str, RoutableNode] | None:
        """Closest unused, off-route store near `near`."""
        best: tuple[float, str, RoutableNode] | None = None
        for node in self.graph.landmarks_near(floor, near[0], near[1], self.config.landmark_radius):
            parent = node.parent_label or ""
            if parent in on_path or "atrium" in parent.lower():
                continue
            name = format_landmark_name(parent)
            if not name or name in used:
                continue
            d = math.hypot(node.x - near[0], node.y - near[1])
            if best is None or d < best[0]:
                best = (d, name, node)
        return (best[1], best[2]) if best else None

    def intermediate(
        self,
        floor: Floor | None,
        angle: float,
        anchor: Point,
        ahead: Point | None,
        index: int,
        on_path: set[str],
        used: list[str],
    ) -> list[DirectionStep]:
        if abs(angle) >= self.config.turn_threshold:
            turn = ("turn-right", "Turn right") if angle > 0 else ("turn-left", "Turn left")
            return [
                self.make_step(anchor, turn[0], turn[1], index),
                self.make_step(anchor, ICON_STRAIGHT, "Continue straight", index),
            ]

        target = ahead or anchor
        midpoint = ((anchor[0] + target[0]) / 2, (anchor[1] + target[1]) / 2)
        found = self.landmark(floor, midpoint, on_path, used)
        if found is None:
            return [self.make_step(anchor, ICON_STRAIGHT, "Continue straight", index)]

        name, node = found
        used.append(name)
        if math.hypot(node.x - target[0], node.y - target[1]) < self.config.landmark_near_distance:
            text = f"Continue towards {name}"
        else:
            text = f"Continue straight until you pass {name}"
        return [self.make_step(anchor, ICON_STRAIGHT, text, index)]

    def floor_steps(self, segment: _FloorSegment, entry_noun: str) -> list[DirectionStep]:
        """Steps for one floor; always closes with a single arrival step."""
        if segment.end - segment.start < 1:
            return []

        floor = segment.floor
        runs = self.runs(segment)
        destination = _control_label(self.nodes[segment.end])
        destination_name = format_landmark_name(destination) or "your destination"
        on_path = {
            label
            for node in self.nodes[segment.start : segment.end + 1]
            for label in (node.parent_label, node.local_label)
            if label
        }
        used: list[str] = []
        steps: list[DirectionStep] = []

        r = 1
        while r < len(runs):
            self.collapse_micro_intersections(floor, runs, r)
            run = runs[r]
            i = run.indices[0]
            if i >= segment.end:
                break

            p1, p2, p3 = self.junction(floor, runs[r - 1], run, segment.end)
            angle = turn_angle(p1, p2, p3)
            turn = classify_turn(angle)
            index = self.nearest_index(p2, segment)
            approaching = (
                _control_label(self.nodes[i + 1]) == destination
                or "storepath" in run.label.lower()
                or i >= segment.end - 1
            )

            if not steps:
                steps.append(self.make_step(p2, turn.icon, f"Exit from {entry_noun} and {turn.exit_phrase}", index))
            elif approaching:
                steps.append(self.make_step(p2, turn.icon, f"{turn.approach_phrase} {destination_name}", index))
                return steps
            else:
                steps.extend(self.intermediate(floor, angle, p2, p3, index, on_path, used))
            r += 1

        end = segment.end
        if end - 2 >= segment.start:
            angle = turn_angle(self.path[end - 2].point, self.path[end - 1].point, self.path[end].point)
        else:
            angle = 0.0
        turn = classify_turn(angle)
        steps.append(self.make_step(self.path[end].point, turn.icon, f"{turn.approach_phrase} {destination_name}", end))
        return steps


def remove_duplicate_steps(steps: Sequence[DirectionStep]) -> list[DirectionStep]:
    """Collapse consecutive steps that repeat the same instruction."""
    out: list[DirectionStep] = []
    for step in steps:
        if not out or out[-1].description != step.description:
            out.append(step)
    return out


def synthesize_directions(
    path: Sequence[RoutePoint],
    graph: GlobalGraph,
    mode: TravelMode = TravelMode.ESCALATOR,
    config: RoutingConfig | None = None,
) -> DirectionsResult:
    """Generate ordered instructions and route totals for a cleaned route.

    Raises:
        MissingGraphLabelError: If a route label is not in `graph`.
    """
    cfg = config or get_routing_config()
    speed = TravelMode(mode).speed(cfg)

    nodes: list[RoutableNode] = []
    for point in path:
        node = graph.get(point.label)
        if node is None:
            raise MissingGraphLabelError(point.label, role="route")
        nodes.append(node)

    if len(nodes) < 2:
        return DirectionsResult(steps=[], total_distance=0.0, total_time=0.0)

    narrator = _Narrator(graph, path, nodes, cfg, speed)
    segments = narrator.floor_segments()
    steps: list[DirectionStep] = []

    for k, segment in enumerate(segments):
        if k > 0:
            previous = segments[k - 1].floor
            names = (
                previous.display_name if previous else "unknown floor",
                segment.floor.display_name if segment.floor else "unknown floor",
            )
            steps.append(
                narrator.make_step(
                    path[segment.start].point,
                    ICON_FLOOR_CHANGE,
                    f"Change floors from {names[0]} to {names[1]}",
                    segment.start,
                    is_floor_change=True,
                    from_floor=previous,
                    to_floor=segment.floor,
                )
            )
        steps.extend(narrator.floor_steps(segment, _entry_noun(nodes[segment.start], first_segment=k == 0)))

    total = narrator.total_distance
    return DirectionsResult(
        steps=remove_duplicate_steps(steps),
        total_distance=total,
        total_time=total / speed,
    )
