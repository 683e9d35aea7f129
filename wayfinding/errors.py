"""Typed failures raised by the wayfinding pipeline."""

from __future__ import annotations

from wayfinding.floors import Floor


class WayfindingError(Exception):
    """Base class for all wayfinding failures."""


class BuildError(WayfindingError):
    """Raw floor graph data is missing, undecodable or malformed."""

    def __init__(self, message: str, floor: Floor | None = None) -> None:
        super().__init__(message)
        self.floor = floor


class MissingGraphLabelError(WayfindingError):
    """A requested start/end label does not exist in the global graph."""

    def __init__(self, label: str, role: str = "location") -> None:
        super().__init__(f"{role.capitalize()} label '{label}' is not in the graph")
        self.label = label
        self.role = role


class NoRouteFoundError(WayfindingError):
    """The search exhausted its frontier without reaching the goal."""

    def __init__(self, start: str, goal: str) -> None:
        super().__init__(f"No route found from '{start}' to '{goal}'")
        self.start = start
        self.goal = goal


class PathReconstructionError(WayfindingError):
    """A predecessor chain references a label absent from the graph."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Path reconstruction hit unknown label '{label}'")
        self.label = label


class SearchCancelledError(WayfindingError):
    """A newer request superseded the running search."""
