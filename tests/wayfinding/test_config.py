"""Unit tests for wayfinding.config."""

from __future__ import annotations

import pytest

from wayfinding.config import RoutingConfig, get_routing_config


def test_defaults_match_tuned_constants() -> None:
    """Default config should carry the tuned routing constants."""
    config = RoutingConfig()

    assert config.split_threshold == 30.0
    assert config.storepath_cap == 3
    assert config.micro_intersection_threshold == 8.0
    assert config.distance_scale == 0.1
    assert config.floor_change_distance == 2.0


def test_env_overrides_are_cast_per_field(monkeypatch) -> None:
    """Environment overrides should be cast to each field's type."""
    monkeypatch.setenv("WAYFINDING_SPLIT_THRESHOLD", "12.5")
    monkeypatch.setenv("WAYFINDING_STOREPATH_CAP", "5")

    config = get_routing_config()

    assert config.split_threshold == 12.5
    assert config.storepath_cap == 5
    assert isinstance(config.storepath_cap, int)


def test_non_numeric_env_value_raises(monkeypatch) -> None:
    """A non-numeric override should fail loudly."""
    monkeypatch.setenv("WAYFINDING_LANDMARK_RADIUS", "far")

    with pytest.raises(ValueError, match="WAYFINDING_LANDMARK_RADIUS"):
        RoutingConfig.from_env()


def test_invalid_values_rejected() -> None:
    """Out-of-range config values must be rejected."""
    with pytest.raises(ValueError, match="split_threshold"):
        RoutingConfig(split_threshold=-1.0)
    with pytest.raises(ValueError, match="speeds"):
        RoutingConfig(elevator_speed=0.0)
