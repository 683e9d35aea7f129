"""Integration tests for floor loading, place listing and route planning endpoints."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from fastapi.testclient import TestClient

from wayfinding.api import STATE, create_app


def _ground_floor() -> dict[str, Any]:
    """Small ground floor: an L-shaped aisle plus a separate store wing."""
    return {
        "nodes": [
            {"id": "A", "x": 0, "y": 0},
            {"id": "B", "x": 10, "y": 0},
            {"id": "C", "x": 10, "y": 10},
            {"id": "D", "x": 500, "y": 500},
            {"id": "Z", "x": 500, "y": 560, "type": "ellipse-center", "parentLabel": "zara"},
        ],
        "edges": [
            {"source": "A", "target": "B"},
            {"source": "B", "target": "C"},
            {"source": "D", "target": "Z"},
        ],
    }


def _load(client: TestClient, floors: dict[str, Any], **extra: Any):
    return client.post("/load-floors", json={"floors": floors, **extra})


def test_health_reports_loaded_graph() -> None:
    """Health should report the loaded graph size."""
    client = TestClient(create_app())

    before = client.get("/health").json()
    assert before["status"] == "ok"
    assert before["nodes"] == 0

    assert _load(client, {"ground": _ground_floor()}).status_code == 200
    after = client.get("/health").json()
    assert after["floors_loaded"] == 1
    assert after["nodes"] == 5


def test_route_before_loading_returns_400() -> None:
    """Routing before any floors are loaded should return 400."""
    client = TestClient(create_app())

    res = client.post("/route", json={"start": "A", "end": "C"})

    assert res.status_code == 400
    assert client.get("/floors").status_code == 400


def test_load_floors_isolates_broken_floor() -> None:
    """A broken floor is reported while the rest is served."""
    client = TestClient(create_app())

    res = _load(client, {"ground": _ground_floor(), "1st": {"nodes": "bad"}})

    assert res.status_code == 200
    body = res.json()
    assert [f["key"] for f in body["floors"]] == ["ground"]
    assert "1st" in body["failed_floors"]
    assert body["nodes"] == 5
    assert body["locations"] == 1
    assert client.get("/floors").json()["failed_floors"].keys() == {"1st"}


def test_load_floors_rejects_bad_input() -> None:
    """Unusable load payloads should be rejected without installing a graph."""
    client = TestClient(create_app())

    assert _load(client, {"mezzanine": _ground_floor()}).status_code == 400
    assert _load(client, {"ground": {"nodes": "bad"}}).status_code == 400
    assert _load(client, {"ground": _ground_floor()}, connectors={"escalator_a": ""}).status_code == 400
    assert _load(client, {}).status_code == 422
    assert STATE.graph is None


def test_locations_listing_and_floor_filter() -> None:
    """Locations should list places and filter by floor."""
    client = TestClient(create_app())
    _load(client, {"ground": _ground_floor()})

    everything = client.get("/locations").json()["locations"]
    assert everything == [{"name": "zara", "floor": "ground", "label": "ground_path_Z"}]
    assert client.get("/locations", params={"floor": "1st"}).json() == {"locations": []}
    assert client.get("/locations", params={"floor": "moon"}).status_code == 404


def test_route_returns_path_and_directions() -> None:
    """A route should return path, steps and totals."""
    client = TestClient(create_app())
    _load(client, {"ground": _ground_floor()})

    res = client.post("/route", json={"start": "A", "end": "C"})

    assert res.status_code == 200
    body = res.json()
    assert [p["label"] for p in body["path"]] == ["ground_path_A", "ground_path_B", "ground_path_C"]
    assert [s["description"] for s in body["steps"]] == [
        "Exit from the store and turn right",
        "On your right should be C",
    ]
    assert body["total_distance"] == 2.0
    assert body["total_distance_text"] == "2m"
    assert body["total_time_text"] == "< 30 sec"


def test_route_to_place_name() -> None:
    """Place names should be accepted as route endpoints."""
    client = TestClient(create_app())
    _load(client, {"ground": _ground_floor()})

    res = client.post("/route", json={"start": "D", "end": "zara", "mode": "elevator"})

    assert res.status_code == 200
    body = res.json()
    assert body["mode"] == "elevator"
    assert body["steps"][-1]["description"] == "Ahead should be Zara"


def test_route_error_statuses() -> None:
    """Route errors should map to 400, 404 and 422."""
    client = TestClient(create_app())
    _load(client, {"ground": _ground_floor()})

    assert client.post("/route", json={"start": "A", "end": "nowhere"}).status_code == 400
    assert client.post("/route", json={"start": "A", "end": "D"}).status_code == 404
    assert client.post("/route", json={"start": "A", "end": "C", "mode": "teleport"}).status_code == 422


def test_multi_floor_route_announces_floor_change() -> None:
    """Multi-floor routes should announce the floor change."""
    client = TestClient(create_app())
    floors = {
        "ground": {
            "nodes": [{"id": "A", "x": 0, "y": 0}, {"id": "escalator_mid_bw_to_g", "x": 10, "y": 0}],
            "edges": [{"source": "A", "target": "escalator_mid_bw_to_g"}],
        },
        "1st": {
            "nodes": [{"id": "escalator_mid_bw_to_lg", "x": 10, "y": 0}, {"id": "B", "x": 20, "y": 0}],
            "edges": [{"source": "escalator_mid_bw_to_lg", "target": "B"}],
        },
    }
    assert _load(client, floors).status_code == 200

    res = client.post("/route", json={"start": "ground_path_A", "end": "1st_path_B"})

    assert res.status_code == 200
    change = [s for s in res.json()["steps"] if s["is_floor_change"]]
    assert len(change) == 1
    assert (change[0]["from_floor"], change[0]["to_floor"]) == ("ground", "1st")

    by_elevator = client.post("/route", json={"start": "ground_path_A", "end": "1st_path_B", "mode": "elevator"})
    assert by_elevator.status_code == 404


def _long_aisle(length: int) -> dict[str, Any]:
    """Straight aisle P0..P{length-1}, nodes 100 units apart."""
    ids = [f"P{i}" for i in range(length)]
    return {
        "nodes": [{"id": node_id, "x": 100 * i, "y": 0} for i, node_id in enumerate(ids)],
        "edges": [{"source": a, "target": b} for a, b in zip(ids, ids[1:])],
    }


def test_concurrent_route_requests_do_not_cancel_each_other() -> None:
    """Two clients routing at the same time should both get their route."""
    app = create_app()
    length = 600

    async def scenario() -> list[httpx.Response]:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            loaded = await client.post("/load-floors", json={"floors": {"ground": _long_aisle(length)}})
            assert loaded.status_code == 200
            return await asyncio.gather(
                client.post("/route", json={"start": "P0", "end": f"P{length - 1}"}),
                client.post("/route", json={"start": "P1", "end": f"P{length - 2}"}),
            )

    first, second = asyncio.run(scenario())

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["path"][-1]["label"] == f"ground_path_P{length - 1}"
    assert second.json()["path"][0]["label"] == "ground_path_P1"
