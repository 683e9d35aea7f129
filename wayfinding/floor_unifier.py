"""Per-floor graph stitching into one floor-qualified routing graph.

Purpose:
- Build every floor's label graph and qualify its labels with the floor.
- Link landings of the same escalator/elevator across floors.
- Resolve human place names to the qualified labels routing starts from.

Usage example:
    >>> from wayfinding.floor_unifier import build_global_graph
    >>> graph = build_global_graph({Floor.GROUND: ground, Floor.FIRST: first})
    >>> graph.floors
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from itertools import combinations
from typing import Mapping

from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.connectors import (
    DEFAULT_CONNECTOR_TABLE,
    connector_type_for,
    storepath_group,
    validate_connector_table,
)
from wayfinding.errors import BuildError, MissingGraphLabelError
from wayfinding.floors import Floor
from wayfinding.graph_builder import build_label_graph
from wayfinding.models import FloorGraph, GlobalGraph, Neighbor, RoutableNode

logger = logging.getLogger(__name__)


def _qualify_floor(
    floor: Floor,
    nodes: Mapping[str, RoutableNode],
    connector_table: Mapping[str, str],
) -> dict[str, RoutableNode]:
    """Return floor-qualified copies of one floor's label graph."""
    qualified: dict[str, RoutableNode] = {}
    for label, node in nodes.items():
        connector_key = connector_table.get(label) or node.connector_id
        connector_type = connector_type_for(label)
        if connector_type is None and connector_key:
            connector_type = connector_type_for(connector_key)

        qualified[floor.qualify(label)] = replace(
            node,
            label=floor.qualify(label),
            raw_label=label,
            floor=floor,
            connector_id=connector_key,
            connector_type=connector_type,
            storepath=storepath_group(label),
            neighbors=tuple(
                Neighbor(floor.qualify(n.label), n.cost, n.floor_change) for n in node.neighbors
            ),
        )
    return qualified


def _connector_links(nodes: Mapping[str, RoutableNode], cost: float) -> dict[str, list[Neighbor]]:
    """Pairwise links between nodes that share a connector key."""
    groups: dict[str, list[RoutableNode]] = {}
    for node in nodes.values():
        if node.connector_id:
            groups.setdefault(node.connector_id, []).append(node)

    links: dict[str, list[Neighbor]] = {}
    for key, members in groups.items():
        if len(members) < 2:
            logger.info("Connector '%s' has a single landing (%s); no cross-floor link", key, members[0].label)
            continue
        for a, b in combinations(members, 2):
            crosses = a.floor is not b.floor
            links.setdefault(a.label, []).append(Neighbor(b.label, cost, crosses))
            links.setdefault(b.label, []).append(Neighbor(a.label, cost, crosses))
    return links


def build_global_graph(
    floor_graphs: Mapping[Floor, FloorGraph],
    connector_table: Mapping[str, str] | None = None,
    config: RoutingConfig | None = None,
) -> GlobalGraph:
    """Merge per-floor graphs into one read-only `GlobalGraph`.

    A floor whose graph cannot be built is left out and reported through
    `GlobalGraph.failed_floors`.

    Raises:
        BuildError: If no floor could be built.
    """
    cfg = config or get_routing_config()
    table = validate_connector_table(DEFAULT_CONNECTOR_TABLE if connector_table is None else connector_table)

    merged: dict[str, RoutableNode] = {}
    failed: dict[Floor, str] = {}

    for floor in sorted(floor_graphs, key=lambda f: f.level):
        try:
            local = build_label_graph(floor_graphs[floor], cfg)
        except BuildError as exc:
            logger.warning("Dropping %s from the routing graph: %s", floor.display_name, exc)
            failed[floor] = str(exc)
            continue
        merged.update(_qualify_floor(floor, local, table))

    if not merged:
        raise BuildError("No floor graph could be built")

    links = _connector_links(merged, cfg.floor_change_cost)
    for label, extra in links.items():
        node = merged[label]
        known = {n.label for n in node.neighbors}
        additions = tuple(n for n in extra if n.label not in known)
        if additions:
            merged[label] = replace(node, neighbors=node.neighbors + additions)

    graph = GlobalGraph(merged, failed_floors=failed)
    logger.info(
        "Built global graph: %d nodes on %d floor(s), %d connector landing(s) linked",
        len(graph),
        len(graph.floors),
        len(links),
    )
    return graph


async def build_global_graph_async(
    floor_graphs: Mapping[Floor, FloorGraph],
    connector_table: Mapping[str, str] | None = None,
    config: RoutingConfig | None = None,
) -> GlobalGraph:
    """Run `build_global_graph` in a worker thread."""
    return await asyncio.to_thread(build_global_graph, floor_graphs, connector_table, config)


def resolve_location_label(graph: GlobalGraph, name: str, floor: Floor | None = None) -> str:
    """Map a place name or label to a floor-qualified graph label.

    Lookup order: an already qualified label, the floor-qualified raw label,
    then a store center/corner whose parent label is `name`.

    Raises:
        MissingGraphLabelError: If nothing in the graph matches.
    """
    candidate = name.strip()
    if candidate in graph and (floor is None or graph[candidate].floor is floor):
        return candidate

    for f in [floor] if floor else graph.floors:
        qualified = f.qualify(candidate)
        if qualified in graph:
            return qualified

    for location in graph.locations():
        if location.name == candidate and (floor is None or location.floor is floor):
            return location.label

    raise MissingGraphLabelError(name)
