"""Unit tests for wayfinding.loader."""

from __future__ import annotations

import json

import pytest

from wayfinding.errors import BuildError
from wayfinding.floors import Floor
from wayfinding.loader import (
    load_floor_graphs,
    normalize_floor_graph,
    parse_floor_graph,
)


def _asset() -> dict:
    return {
        "metadata": {"source": "svg"},
        "nodes": [
            {"id": "n1", "x": -20, "y": -5, "type": "path-point", "label": "aisle_point_0", "parentLabel": "aisle"},
            {"id": "n2", "x": 30, "y": -5, "type": "path-point"},
            {"id": "n3", "x": 30, "y": -40, "type": "ellipse-center", "label": "zara", "parentLabel": "zara"},
            {"id": "n4", "x": 0, "y": -60, "type": "rect-corner", "parentLabel": "toilet", "connectionId": "c1"},
        ],
        "edges": [{"source": "n1", "target": "n2", "type": "line"}],
    }


def test_parse_floor_graph_reads_aliases() -> None:
    """Asset field aliases should parse into raw nodes."""
    graph = parse_floor_graph(_asset(), Floor.GROUND)

    first = graph.nodes[0]
    assert first.parent_label == "aisle"
    assert graph.nodes[3].connection_id == "c1"
    assert graph.edges[0].source == "n1"
    assert graph.metadata == {"source": "svg"}


def test_parse_floor_graph_invalid_payload_raises_build_error() -> None:
    """Invalid assets should raise BuildError."""
    payload = {"nodes": [{"id": "n1", "y": 3}]}

    with pytest.raises(BuildError, match="Invalid floor graph for Ground Floor") as info:
        parse_floor_graph(payload, Floor.GROUND)
    assert info.value.floor is Floor.GROUND


def test_normalize_floor_graph_folds_y_and_shifts_x() -> None:
    """Normalization should fold y and shift x into the positive quadrant."""
    graph = normalize_floor_graph(parse_floor_graph(_asset()))

    xs = [node.x for node in graph.nodes]
    assert min(xs) == 0.0
    assert all(node.y >= 0 for node in graph.nodes)
    assert graph.nodes[1].x == 50.0
    assert graph.nodes[1].label == "n2"


def test_load_floor_graphs_isolates_broken_floor(tmp_path) -> None:
    """One unreadable floor asset must not stop the others loading."""
    (tmp_path / "ground_path.json").write_text(json.dumps(_asset()), encoding="utf-8")
    (tmp_path / "1st_path.json").write_text("{broken", encoding="utf-8")

    graphs, failures = load_floor_graphs(tmp_path)

    assert list(graphs) == [Floor.GROUND]
    assert list(failures) == [Floor.FIRST]
    assert "not valid JSON" in failures[Floor.FIRST]


def test_load_floor_graphs_missing_directory_raises(tmp_path) -> None:
    """A missing asset directory should raise."""
    with pytest.raises(ValueError, match="does not exist"):
        load_floor_graphs(tmp_path / "nope")

