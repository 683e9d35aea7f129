"""FastAPI routes for loading floor graphs and planning indoor routes.

Endpoints:
- `/load-floors` builds the routing graph from per-floor graph JSON.
- `/floors`, `/locations` describe what is loaded.
- `/route` plans a route with turn-by-turn directions.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from wayfinding.config import get_routing_config
from wayfinding.errors import (
    BuildError,
    MissingGraphLabelError,
    NoRouteFoundError,
    PathReconstructionError,
)
from wayfinding.floor_unifier import build_global_graph_async
from wayfinding.floors import Floor
from wayfinding.loader import normalize_floor_graph, parse_floor_graph
from wayfinding.models import FloorGraph, GlobalGraph, RouteRequest, TravelMode
from wayfinding.service import RouteService
from wayfinding.utils import format_distance, format_time, step_to_dict, to_serializable_path

logger = logging.getLogger(__name__)


@dataclass
class RoutingState:
    """In-memory state for the currently loaded building."""

    graph: GlobalGraph | None = None
    failed_floors: dict[Floor, str] = field(default_factory=dict)


STATE = RoutingState()


class LoadFloorsRequest(BaseModel):
    """Per-floor raw graphs keyed by floor key (`ground`, `1st`, ...)."""

    floors: dict[str, dict[str, Any]] = Field(..., min_length=1)
    connectors: dict[str, str] | None = None


class RouteQuery(BaseModel):
    """Request payload for route planning; endpoints are labels or place names."""

    start: str = Field(..., min_length=1)
    end: str = Field(..., min_length=1)
    mode: TravelMode = TravelMode.ESCALATOR


class RouteResponse(BaseModel):
    """Planned route with directions and totals."""

    start: str
    end: str
    mode: TravelMode
    path: list[dict[str, Any]]
    raw_path: list[dict[str, Any]]
    steps: list[dict[str, Any]]
    total_distance: float
    total_time: float
    total_distance_text: str
    total_time_text: str


def _graph_or_400() -> GlobalGraph:
    if STATE.graph is None:
        raise HTTPException(status_code=400, detail="No floor graphs loaded yet")
    return STATE.graph


def _parse_floors(raw_floors: dict[str, dict[str, Any]]) -> tuple[dict[Floor, FloorGraph], dict[Floor, str]]:
    """Decode every floor independently; undecodable floors are reported, not fatal."""
    graphs: dict[Floor, FloorGraph] = {}
    failures: dict[Floor, str] = {}
    for key, payload in raw_floors.items():
        floor = Floor.from_key(key)
        try:
            graphs[floor] = normalize_floor_graph(parse_floor_graph(payload, floor))
        except BuildError as exc:
            logger.warning("Skipping %s: %s", floor.display_name, exc)
            failures[floor] = str(exc)
    return graphs, failures


def install_graph(graph: GlobalGraph, failures: dict[Floor, str] | None = None) -> None:
    """Make `graph` the one served by the API."""
    STATE.graph = graph
    STATE.failed_floors = {**(failures or {}), **graph.failed_floors}


def _floors_payload(graph: GlobalGraph) -> dict[str, Any]:
    return {
        "floors": [
            {"key": f.key, "level": f.level, "display_name": f.display_name} for f in graph.floors
        ],
        "failed_floors": {f.key: reason for f, reason in STATE.failed_floors.items()},
    }


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Wayfinding API", version="1.0.0")

    raw_origins = os.getenv("WAYFINDING_CORS_ORIGINS", "*").strip()
    if raw_origins == "*":
        cors_origins = ["*"]
        allow_credentials = False
    else:
        cors_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
        allow_credentials = True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Health endpoint with loaded-graph summary."""
        graph = STATE.graph
        return {
            "status": "ok",
            "version": app.version,
            "floors_loaded": len(graph.floors) if graph is not None else 0,
            "nodes": len(graph) if graph is not None else 0,
        }

    @app.post("/load-floors")
    async def load_floors(payload: LoadFloorsRequest) -> dict[str, Any]:
        """Build and install the routing graph from per-floor raw graphs."""
        try:
            graphs, failures = _parse_floors(payload.floors)
            if not graphs:
                raise BuildError("No floor graph could be decoded")
            graph = await build_global_graph_async(graphs, payload.connectors, get_routing_config())
        except (BuildError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Floor loading failed: {exc}") from exc

        install_graph(graph, failures)
        return {
            **_floors_payload(graph),
            "nodes": len(graph),
            "locations": len(graph.locations()),
        }

    @app.get("/floors")
    async def get_floors() -> dict[str, Any]:
        """Return loaded and failed floors."""
        return _floors_payload(_graph_or_400())

    @app.get("/locations")
    async def get_locations(floor: str | None = Query(default=None)) -> dict[str, Any]:
        """Return routable places, optionally restricted to one floor."""
        graph = _graph_or_400()
        try:
            wanted = Floor.from_key(floor) if floor else None
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

        return {
            "locations": [
                {"name": loc.name, "floor": loc.floor.key, "label": loc.label}
                for loc in graph.locations()
                if wanted is None or loc.floor is wanted
            ]
        }

    @app.post("/route", response_model=RouteResponse)
    async def route(payload: RouteQuery) -> RouteResponse:
        """Plan a route between two places under a travel mode."""
        graph = _graph_or_400()
        # One service per HTTP request: callers never supersede each other.
        service = RouteService(graph, get_routing_config())

        try:
            plan = await asyncio.to_thread(
                service.compute, RouteRequest(payload.start, payload.end, payload.mode)
            )
        except MissingGraphLabelError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except NoRouteFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except PathReconstructionError as exc:
            raise HTTPException(status_code=500, detail=f"Route reconstruction failed: {exc}") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid route query: {exc}") from exc

        directions = plan.directions
        return RouteResponse(
            start=payload.start,
            end=payload.end,
            mode=payload.mode,
            path=to_serializable_path(plan.path),
            raw_path=to_serializable_path(plan.raw_path),
            steps=[step_to_dict(step) for step in directions.steps],
            total_distance=round(directions.total_distance, 3),
            total_time=round(directions.total_time, 3),
            total_distance_text=format_distance(directions.total_distance),
            total_time_text=format_time(directions.total_time),
        )

    return app
