"""Vertical connector vocabulary and label classification helpers."""

from __future__ import annotations

import json
import re
from enum import Enum
from pathlib import Path
from typing import Mapping


class ConnectorType(str, Enum):
    """Physical device type linking floors."""

    ESCALATOR = "escalator"
    ELEVATOR = "elevator"

    @property
    def tokens(self) -> frozenset[str]:
        return _CONNECTOR_TOKENS[self]


_CONNECTOR_TOKENS: dict[ConnectorType, frozenset[str]] = {
    ConnectorType.ESCALATOR: frozenset({"escalator"}),
    ConnectorType.ELEVATOR: frozenset({"elevator", "lift"}),
}

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_STOREPATH = re.compile(r"storepath(\d+)")

# Raw floor-local label -> connector key shared by every landing of one device.
DEFAULT_CONNECTOR_TABLE: dict[str, str] = {
    "escalator_mid_bw_to_g": "escalator_mid_bw",
    "escalator_mid_bw_to_lg": "escalator_mid_bw",
    "escalator_west_bw_to_g": "escalator_west_bw",
    "escalator_west_bw_to_lg": "escalator_west_bw",
    "elevator_west_to_g": "lift_west",
    "elevator_west_to_lg": "lift_west",
    "elevator_2_west_to_lg": "lift_west",
    "elevator_2_my_cws": "lift_west",
    "escalator_bw_uniqlo": "escalator_uniqlo",
    "escalator_bw_mini_atrium": "escalator_uniqlo",
    "escalator_bw_linear_east_atrium-9": "escalator_linear_east",
    "escalator_bw_parking-7": "escalator_linear_east",
    "escalator_bw_oval_east_atrium": "escalator_oval_east",
    "escalator_bw_asics": "escalator_oval_east",
    "escalator_bw_south_lobby": "escalator_south_lobby_project_soul",
    "escalator_bw_project_soul": "escalator_south_lobby_project_soul",
    "escalator_bw_linear_atrium": "escalator_linear_atrium_giordano",
    "escalator_bw_giordano": "escalator_linear_atrium_giordano",
    "escalator_bw_braun_buffel": "escalator_braun_buffel_mycws",
    "escalator_bw_my_cws_lower": "escalator_braun_buffel_mycws",
    "elevator_frederique": "lift_south_east",
    "elevator_south_east": "lift_south_east",
    "elevator_south_lobby": "lift_south_lobby_entrance",
    "elevator_first_floor_entrance": "lift_south_lobby_entrance",
    "elevator_2": "lift_north",
    "elevator_north": "lift_north",
}


def label_tokens(label: str) -> set[str]:
    """Split a label into lowercase alphanumeric tokens."""
    return {token for token in _TOKEN_SPLIT.split(label.lower()) if token}


def connector_type_for(label: str | None) -> ConnectorType | None:
    """Classify a label as escalator/elevator by whole-word tokens."""
    if not label:
        return None
    tokens = label_tokens(label)
    for connector_type in ConnectorType:
        if tokens & connector_type.tokens:
            return connector_type
    return None


def storepath_group(label: str | None) -> str | None:
    """Return the store-private aisle number of a `storepath<N>` label."""
    if not label:
        return None
    match = _STOREPATH.search(label.lower())
    return match.group(1) if match else None


def validate_connector_table(table: Mapping[str, str]) -> dict[str, str]:
    """Ensure connector table maps non-empty strings to non-empty strings."""
    out: dict[str, str] = {}
    for raw_label, connector_key in table.items():
        if not isinstance(raw_label, str) or not raw_label.strip():
            raise ValueError("Connector table keys must be non-empty strings")
        if not isinstance(connector_key, str) or not connector_key.strip():
            raise ValueError(f"Connector key for {raw_label!r} must be a non-empty string")
        out[raw_label.strip()] = connector_key.strip()
    return out


def load_connector_table(path: str | Path) -> dict[str, str]:
    """Load a `{raw_label: connector_key}` JSON object from disk."""
    try:
        parsed = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Connector table {path} is not valid JSON") from exc

    if not isinstance(parsed, dict):
        raise ValueError("Connector table must be a JSON object")
    return validate_connector_table(parsed)
