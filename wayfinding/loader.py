"""Floor asset parsing and normalization.

Purpose:
- Validate raw per-floor graph JSON into immutable `FloorGraph` values.
- Normalize coordinates into the positive quadrant used by routing.
- Load every floor asset from a directory, isolating per-floor failures.

Usage example:
    >>> from wayfinding.loader import load_floor_graphs
    >>> graphs, failures = load_floor_graphs("data/floors")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wayfinding.errors import BuildError
from wayfinding.floors import Floor
from wayfinding.models import FloorGraph, RawEdge, RawNode

logger = logging.getLogger(__name__)


class RawNodePayload(BaseModel):
    """Node entry in a floor asset."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    x: float
    y: float
    type: str = "path-point"
    rx: float | None = None
    ry: float | None = None
    angle: float | None = None
    label: str | None = None
    parent_label: str | None = Field(default=None, alias="parentLabel")
    connection_id: str | None = Field(default=None, alias="connectionId")


class RawEdgePayload(BaseModel):
    """Edge entry in a floor asset."""

    model_config = ConfigDict(extra="ignore")

    source: str
    target: str
    type: str = "line"


class RawGraphPayload(BaseModel):
    """Top-level floor asset document."""

    model_config = ConfigDict(extra="ignore")

    metadata: dict[str, Any] = Field(default_factory=dict)
    nodes: list[RawNodePayload]
    edges: list[RawEdgePayload] = Field(default_factory=list)


def parse_floor_graph(payload: dict[str, Any] | RawGraphPayload, floor: Floor | None = None) -> FloorGraph:
    """Validate a decoded floor asset and convert it into a `FloorGraph`.

    Raises:
        BuildError: If the payload does not match the floor asset schema.
    """
    if isinstance(payload, RawGraphPayload):
        document = payload
    else:
        try:
            document = RawGraphPayload.model_validate(payload)
        except ValidationError as exc:
            where = f" for {floor.display_name}" if floor else ""
            raise BuildError(f"Invalid floor graph{where}: {exc.error_count()} schema error(s)", floor) from exc

    nodes = tuple(
        RawNode(
            id=item.id,
            x=item.x,
            y=item.y,
            type=item.type,
            rx=item.rx,
            ry=item.ry,
            angle=item.angle,
            label=item.label,
            parent_label=item.parent_label,
            connection_id=item.connection_id,
        )
        for item in document.nodes
    )
    edges = tuple(RawEdge(source=e.source, target=e.target, type=e.type) for e in document.edges)
    return FloorGraph(nodes=nodes, edges=edges, metadata=dict(document.metadata))


def normalize_floor_graph(graph: FloorGraph) -> FloorGraph:
    """Fold y to positive values and shift x so that no coordinate is negative."""
    if not graph.nodes:
        return graph

    min_x = min(node.x for node in graph.nodes)
    offset_x = -min_x if min_x < 0 else 0.0

    nodes = tuple(
        RawNode(
            id=node.id,
            x=node.x + offset_x,
            y=abs(node.y),
            type=node.type,
            rx=node.rx,
            ry=node.ry,
            angle=node.angle,
            label=node.label or node.id,
            parent_label=node.parent_label,
            connection_id=node.connection_id,
        )
        for node in graph.nodes
    )
    return FloorGraph(nodes=nodes, edges=graph.edges, metadata=graph.metadata)


def load_floor_graph(path: str | Path, floor: Floor | None = None) -> FloorGraph:
    """Read, validate and normalize one floor asset file."""
    asset = Path(path)
    try:
        raw = json.loads(asset.read_text(encoding="utf-8"))
    except OSError as exc:
        raise BuildError(f"Could not read floor asset {asset}: {exc}", floor) from exc
    except json.JSONDecodeError as exc:
        raise BuildError(f"Floor asset {asset} is not valid JSON", floor) from exc

    if not isinstance(raw, dict):
        raise BuildError(f"Floor asset {asset} must be a JSON object", floor)
    return normalize_floor_graph(parse_floor_graph(raw, floor))


def load_floor_graphs(
    directory: str | Path,
    floors: Iterable[Floor] = Floor,
) -> tuple[dict[Floor, FloorGraph], dict[Floor, str]]:
    """Load `<floor.file_name>.json` for every floor found in `directory`.

    Floors without an asset are skipped. Floors whose asset cannot be decoded
    are reported in the returned failure mapping instead of aborting the load.
    """
    root = Path(directory)
    if not root.is_dir():
        raise ValueError(f"Floor asset directory does not exist: {root}")

    graphs: dict[Floor, FloorGraph] = {}
    failures: dict[Floor, str] = {}

    for floor in floors:
        asset = root / f"{floor.file_name}.json"
        if not asset.exists():
            logger.debug("No asset for %s at %s", floor.display_name, asset)
            continue
        try:
            graphs[floor] = load_floor_graph(asset, floor)
        except BuildError as exc:
            logger.warning("Skipping %s: %s", floor.display_name, exc)
            failures[floor] = str(exc)
            continue
        logger.info(
            "Loaded %s with %d nodes and %d edges",
            floor.display_name,
            len(graphs[floor].nodes),
            len(graphs[floor].edges),
        )

    return graphs, failures

