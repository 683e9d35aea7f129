"""Request-scoped route computation with last-request-wins cancellation.

Usage example:
    >>> service = RouteService(graph)
    >>> plan = await service.plan(RouteRequest("h&m", "uniqlo", TravelMode.ELEVATOR))
    >>> plan.directions.total_distance
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import replace

from wayfinding.config import RoutingConfig, get_routing_config
from wayfinding.directions import synthesize_directions
from wayfinding.errors import SearchCancelledError
from wayfinding.floor_unifier import resolve_location_label
from wayfinding.models import GlobalGraph, RoutePlan, RouteRequest, TravelMode
from wayfinding.path_cleaner import clean_path
from wayfinding.pathfinding import find_route

logger = logging.getLogger(__name__)


class RouteService:
    """Runs search, cleaning and direction synthesis over one shared graph.

    The graph is read-only, so concurrent computations need no locking. Only
    the most recent `plan` call is kept alive; starting a new one cancels the
    previous task and signals its worker thread to stop searching.
    """

    def __init__(self, graph: GlobalGraph, config: RoutingConfig | None = None) -> None:
        self._graph = graph
        self._config = config or get_routing_config()
        self._current: tuple[asyncio.Future, threading.Event] | None = None
        self.last_request: RouteRequest | None = None

    @property
    def graph(self) -> GlobalGraph:
        return self._graph

    def compute(self, request: RouteRequest, cancel_event: threading.Event | None = None) -> RoutePlan:
        """Synchronously resolve, search, clean and narrate one request."""
        start = resolve_location_label(self._graph, request.start)
        end = resolve_location_label(self._graph, request.end)

        raw_path = find_route(self._graph, start, end, request.mode, self._config, cancel_event)
        path = clean_path(raw_path, self._graph, self._config)
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelledError(f"Route {start} -> {end} was superseded")

        directions = synthesize_directions(path, self._graph, request.mode, self._config)
        logger.info(
            "Planned %s -> %s (%s): %d points, %d steps, %.1fm",
            start,
            end,
            request.mode.value,
            len(path),
            len(directions.steps),
            directions.total_distance,
        )
        return RoutePlan(request=request, raw_path=raw_path, path=path, directions=directions)

    async def plan(self, request: RouteRequest) -> RoutePlan:
        """Compute `request` in a worker thread, superseding any running plan.

        Raises:
            SearchCancelledError: If a newer request replaced this one.
        """
        self.cancel()

        event = threading.Event()
        task = asyncio.ensure_future(asyncio.to_thread(self.compute, request, event))
        self._current = (task, event)
        self.last_request = request

        try:
            return await task
        except asyncio.CancelledError:
            event.set()
            if task.cancelled() and not _current_task_cancelling():
                raise SearchCancelledError(f"Route request {request.start} -> {request.end} was superseded") from None
            raise
        finally:
            if self._current is not None and self._current[0] is task:
                self._current = None

    async def change_mode(self, mode: TravelMode) -> RoutePlan:
        """Re-run the last request under a different travel mode."""
        if self.last_request is None:
            raise ValueError("No previous route request to re-run")
        return await self.plan(replace(self.last_request, mode=TravelMode(mode)))

    def cancel(self) -> None:
        """Cancel the in-flight plan, if any."""
        if self._current is None:
            return
        task, event = self._current
        self._current = None
        event.set()
        task.cancel()
        logger.debug("Superseded in-flight route request")


def _current_task_cancelling() -> bool:
    """True when the awaiting task itself is being cancelled."""
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0
