"""Unit tests for wayfinding.service."""

from __future__ import annotations

import asyncio
import threading

import pytest

from wayfinding.config import RoutingConfig
from wayfinding.errors import MissingGraphLabelError, SearchCancelledError
from wayfinding.models import RouteRequest, TravelMode
from wayfinding.service import RouteService


@pytest.fixture()
def service(abc_graph) -> RouteService:
    return RouteService(abc_graph, RoutingConfig())


def test_compute_resolves_names_and_narrates(service) -> None:
    """compute should resolve places, search and narrate in one call."""
    plan = service.compute(RouteRequest("A", "C"))

    assert [p.label for p in plan.path] == ["ground_path_A", "ground_path_B", "ground_path_C"]
    assert plan.raw_path == plan.path
    assert len(plan.directions.steps) == 2
    assert plan.directions.total_distance == pytest.approx(2.0)


def test_compute_honours_cancel_event(service) -> None:
    """A set cancel event should abort compute."""
    event = threading.Event()
    event.set()

    with pytest.raises(SearchCancelledError):
        service.compute(RouteRequest("A", "C"), event)


def test_plan_runs_in_worker_thread(service) -> None:
    """plan should compute off the event loop and remember the request."""
    plan = asyncio.run(service.plan(RouteRequest("A", "C", TravelMode.ELEVATOR)))

    assert plan.request.mode is TravelMode.ELEVATOR
    assert plan.directions.total_time == pytest.approx(2.0 / 0.2)
    assert service.last_request == plan.request


def test_plan_propagates_lookup_errors(service) -> None:
    """Lookup errors from compute should surface from plan."""
    with pytest.raises(MissingGraphLabelError):
        asyncio.run(service.plan(RouteRequest("A", "nowhere")))


def test_newer_plan_supersedes_running_one(service) -> None:
    """A newer plan from the same caller cancels the running one."""
    async def scenario():
        first = asyncio.create_task(service.plan(RouteRequest("A", "C")))
        await asyncio.sleep(0)
        second = await service.plan(RouteRequest("C", "A"))
        with pytest.raises(SearchCancelledError):
            await first
        return second

    second = asyncio.run(scenario())

    assert [p.label for p in second.path][-1] == "ground_path_A"


def test_change_mode_reruns_last_request(service) -> None:
    """change_mode should re-plan the last request in the new mode."""
    async def scenario():
        await service.plan(RouteRequest("A", "C"))
        return await service.change_mode(TravelMode.ELEVATOR)

    plan = asyncio.run(scenario())

    assert plan.request == RouteRequest("A", "C", TravelMode.ELEVATOR)


def test_change_mode_without_history_raises(service) -> None:
    """change_mode needs a previous request."""
    with pytest.raises(ValueError, match="No previous"):
        asyncio.run(service.change_mode(TravelMode.ELEVATOR))
