"""Raw floor graph to label-addressed routable graph.

Purpose:
- Resolve raw node/edge lists into symmetric, Euclidean-weighted adjacency.
- Insert synthetic junctions where a node sits close to an edge it does not
  touch, so store entrances and side branches join the aisle network.

Usage example:
    >>> from wayfinding.graph_builder import build_label_graph
    >>> nodes = build_label_graph(floor_graph)
    >>> nodes["split_1"].neighbors
"""

from __future__ import annotations

import logging
import math

import numpy as np

from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.errors import BuildError
from wayfinding.models import FloorGraph, Neighbor, NodeKind, RawNode, RoutableNode

logger = logging.getLogger(__name__)

SPLIT_PREFIX = "split_"

# Store outline points never attach to aisles; circle entrances do.
TERMINAL_TYPE_TAGS = frozenset({"ellipse-point"})

EdgeKey = tuple[str, str]


def _validate_floor_graph(graph: FloorGraph) -> None:
    """Reject graphs with unusable coordinates."""
    for node in graph.nodes:
        if not (math.isfinite(node.x) and math.isfinite(node.y)):
            raise BuildError(f"Node '{node.id}' has non-finite coordinates")


def _node_kind(node: RawNode) -> NodeKind:
    kind = NodeKind.from_type_tag(node.type)
    if kind is None:
        logger.warning("Unknown node type %r on node '%s'; treating as path point", node.type, node.id)
        return NodeKind.PATH_POINT
    return kind


def _unique_edges(graph: FloorGraph, by_id: dict[str, RawNode]) -> list[EdgeKey]:
    """Drop self-loops, dangling references and reversed duplicates."""
    seen: set[frozenset[str]] = set()
    edges: list[EdgeKey] = []
    for edge in graph.edges:
        if edge.source not in by_id or edge.target not in by_id:
            logger.warning("Skipping edge %s-%s: unknown node id", edge.source, edge.target)
            continue
        if edge.source == edge.target:
            continue
        key = frozenset((edge.source, edge.target))
        if key in seen:
            continue
        seen.add(key)
        edges.append((edge.source, edge.target))
    return edges


def project_onto_segments(
    px: float,
    py: float,
    starts: np.ndarray,
    ends: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Project one point onto many segments at once.

    Args:
        px: Point x.
        py: Point y.
        starts: `(E, 2)` segment start coordinates.
        ends: `(E, 2)` segment end coordinates.

    Returns:
        Tuple `(distances, projections, t)` where `t` is the clamped position
        of each projection along its segment. Zero-length segments project onto
        their start point.
    """
    seg = ends - starts
    length_sq = np.einsum("ij,ij->i", seg, seg)
    rel = np.array([px, py], dtype=float) - starts

    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(length_sq > 0, np.einsum("ij,ij->i", rel, seg) / length_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)

    projections = starts + t[:, None] * seg
    distances = np.hypot(projections[:, 0] - px, projections[:, 1] - py)
    return distances, projections, t


def build_label_graph(graph: FloorGraph, config: RoutingConfig | None = None) -> dict[str, RoutableNode]:
    """Convert one floor's raw graph into a label -> RoutableNode mapping.

    Each node other than an ellipse outline point may split at most one edge:
    the closest edge it does not already touch, when closer than
    `config.split_threshold`. Several junctions on one edge are chained in
    order along it.

    Raises:
        BuildError: If node coordinates are not finite.
    """
    cfg = config or get_routing_config()
    _validate_floor_graph(graph)

    by_id: dict[str, RawNode] = {}
    for node in graph.nodes:
        if node.id in by_id:
            logger.warning("Duplicate node id '%s'; keeping the last definition", node.id)
        by_id[node.id] = node

    edges = _unique_edges(graph, by_id)
    junction_points: dict[str, tuple[float, float]] = {}
    splits: dict[int, list[tuple[float, str, str]]] = {}

    raw_neighbors: dict[str, set[str]] = {}
    for source, target in edges:
        raw_neighbors.setdefault(source, set()).add(target)
        raw_neighbors.setdefault(target, set()).add(source)

    if edges:
        sources = np.array([s for s, _ in edges], dtype=object)
        targets = np.array([t for _, t in edges], dtype=object)
        starts = np.array([[by_id[s].x, by_id[s].y] for s, _ in edges], dtype=float)
        ends = np.array([[by_id[t].x, by_id[t].y] for _, t in edges], dtype=float)

        for candidate in by_id.values():
            if candidate.type.strip().lower() in TERMINAL_TYPE_TAGS:
                continue

            distances, projections, t = project_onto_segments(candidate.x, candidate.y, starts, ends)
            distances[(sources == candidate.id) | (targets == candidate.id)] = np.inf

            # A junction on an endpoint the candidate already reaches adds nothing.
            linked = raw_neighbors.get(candidate.id, set())
            if linked:
                at_linked_start = (t <= 0.0) & np.fromiter((s in linked for s in sources), bool, len(edges))
                at_linked_end = (t >= 1.0) & np.fromiter((e in linked for e in targets), bool, len(edges))
                distances[at_linked_start | at_linked_end] = np.inf

            best = int(np.argmin(distances))
            if not distances[best] < cfg.split_threshold:
                continue

            split_id = f"{SPLIT_PREFIX}{len(junction_points) + 1}"
            junction_points[split_id] = (float(projections[best, 0]), float(projections[best, 1]))
            splits.setdefault(best, []).append((float(t[best]), split_id, candidate.id))

    final_edges: list[EdgeKey] = []
    for idx, (source, target) in enumerate(edges):
        chain = splits.get(idx)
        if not chain:
            final_edges.append((source, target))
            continue

        previous = source
        for _, split_id, candidate_id in sorted(chain):
            final_edges.append((previous, split_id))
            final_edges.append((candidate_id, split_id))
            previous = split_id
        final_edges.append((previous, target))

    return _assemble(by_id, junction_points, final_edges, len(graph.edges))


def _assemble(
    by_id: dict[str, RawNode],
    junction_points: dict[str, tuple[float, float]],
    edges: list[EdgeKey],
    raw_edge_count: int,
) -> dict[str, RoutableNode]:
    """Resolve labels and build symmetric adjacency from the final edge set."""
    coords: dict[str, tuple[float, float]] = {nid: (n.x, n.y) for nid, n in by_id.items()}
    coords.update(junction_points)

    def label_of(node_id: str) -> str:
        node = by_id.get(node_id)
        return node.routing_label if node is not None else node_id

    adjacency: dict[str, dict[str, float]] = {}
    for node in by_id.values():
        adjacency.setdefault(node.routing_label, {})
    for split_id in junction_points:
        adjacency.setdefault(split_id, {})

    for source, target in edges:
        a, b = label_of(source), label_of(target)
        if a == b:
            continue
        (x1, y1), (x2, y2) = coords[source], coords[target]
        cost = math.hypot(x2 - x1, y2 - y1)
        adjacency[a].setdefault(b, cost)
        adjacency[b].setdefault(a, cost)

    nodes: dict[str, RoutableNode] = {}
    for node in by_id.values():
        label = node.routing_label
        nodes[label] = RoutableNode(
            node_id=node.id,
            label=label,
            raw_label=label,
            x=node.x,
            y=node.y,
            kind=_node_kind(node),
            type_tag=node.type,
            parent_label=node.parent_label,
            connector_id=node.connection_id,
            neighbors=tuple(Neighbor(n, c) for n, c in adjacency[label].items()),
        )

    for split_id, (x, y) in junction_points.items():
        nodes[split_id] = RoutableNode(
            node_id=split_id,
            label=split_id,
            raw_label=split_id,
            x=x,
            y=y,
            kind=NodeKind.JUNCTION,
            type_tag="junction",
            neighbors=tuple(Neighbor(n, c) for n, c in adjacency[split_id].items()),
        )

    logger.info(
        "Built label graph: %d nodes, %d raw edges, %d junctions",
        len(nodes),
        raw_edge_count,
        len(junction_points),
    )
    return nodes
