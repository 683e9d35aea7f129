"""Tuned routing constants with environment overrides.

Env vars (all optional):
  WAYFINDING_SPLIT_THRESHOLD=30
  WAYFINDING_FLOOR_CHANGE_COST=0
  WAYFINDING_STOREPATH_PROXIMITY=30
  WAYFINDING_STOREPATH_CAP=3
  WAYFINDING_CLEANER_PROXIMITY=5
  WAYFINDING_CLEANER_SIMILARITY=1
  WAYFINDING_MICRO_INTERSECTION=8
  WAYFINDING_LANDMARK_RADIUS=80
  WAYFINDING_LANDMARK_NEAR=40
  WAYFINDING_TURN_THRESHOLD=35
  WAYFINDING_DISTANCE_SCALE=0.1
  WAYFINDING_FLOOR_CHANGE_DISTANCE=2
  WAYFINDING_ESCALATOR_SPEED=0.5
  WAYFINDING_ELEVATOR_SPEED=0.2
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from functools import lru_cache

_ENV_NAMES = {
    "split_threshold": "WAYFINDING_SPLIT_THRESHOLD",
    "floor_change_cost": "WAYFINDING_FLOOR_CHANGE_COST",
    "storepath_proximity": "WAYFINDING_STOREPATH_PROXIMITY",
    "storepath_cap": "WAYFINDING_STOREPATH_CAP",
    "cleaner_proximity": "WAYFINDING_CLEANER_PROXIMITY",
    "cleaner_similarity": "WAYFINDING_CLEANER_SIMILARITY",
    "micro_intersection_threshold": "WAYFINDING_MICRO_INTERSECTION",
    "landmark_radius": "WAYFINDING_LANDMARK_RADIUS",
    "landmark_near_distance": "WAYFINDING_LANDMARK_NEAR",
    "turn_threshold": "WAYFINDING_TURN_THRESHOLD",
    "distance_scale": "WAYFINDING_DISTANCE_SCALE",
    "floor_change_distance": "WAYFINDING_FLOOR_CHANGE_DISTANCE",
    "escalator_speed": "WAYFINDING_ESCALATOR_SPEED",
    "elevator_speed": "WAYFINDING_ELEVATOR_SPEED",
}


@dataclass(frozen=True, slots=True)
class RoutingConfig:
    """Empirically tuned thresholds, in map units unless noted."""

    split_threshold: float = 30.0
    floor_change_cost: float = 0.0
    storepath_proximity: float = 30.0
    storepath_cap: int = 3
    cleaner_proximity: float = 5.0
    cleaner_similarity: float = 1.0
    micro_intersection_threshold: float = 8.0
    landmark_radius: float = 80.0
    landmark_near_distance: float = 40.0
    # Degrees; smaller bends between aisles read as "continue".
    turn_threshold: float = 35.0
    # Meters per map unit.
    distance_scale: float = 0.1
    # Meters per floor level crossed.
    floor_change_distance: float = 2.0
    # Meters per second.
    escalator_speed: float = 0.5
    elevator_speed: float = 0.2

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if value < 0:
                raise ValueError(f"{item.name} must be >= 0")
        if self.escalator_speed <= 0 or self.elevator_speed <= 0:
            raise ValueError("Travel speeds must be > 0")

    @classmethod
    def from_env(cls) -> "RoutingConfig":
        """Build config from `WAYFINDING_*` env vars, falling back to defaults."""
        overrides: dict[str, float | int] = {}
        for item in fields(cls):
            raw = os.getenv(_ENV_NAMES[item.name], "").strip()
            if not raw:
                continue
            try:
                overrides[item.name] = int(raw) if item.type in ("int", int) else float(raw)
            except ValueError as exc:
                raise ValueError(f"{_ENV_NAMES[item.name]} must be numeric, got {raw!r}") from exc
        return cls(**overrides)


@lru_cache(maxsize=1)
def get_routing_config() -> RoutingConfig:
    """Load routing config from env vars once per process."""
    return RoutingConfig.from_env()
