"""Application entry point for the wayfinding API.

Run locally:
    uvicorn wayfinding.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import uvicorn

from wayfinding.api import create_app, install_graph
from wayfinding.connectors import load_connector_table
from wayfinding.errors import BuildError
from wayfinding.floor_unifier import build_global_graph
from wayfinding.loader import load_floor_graphs

logger = logging.getLogger(__name__)

# Searched in order; the first file that sets a key wins unless the env var is already set.
ENV_FILES = (Path("wayfinding/.env"), Path(".env"))


def _load_local_env(candidates: tuple[Path, ...] = ENV_FILES) -> None:
    """Load key=value pairs from local .env files if present."""
    for env_path in candidates:
        if not env_path.exists():
            continue

        for raw in env_path.read_text(encoding="utf-8").splitlines():
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if not key or key in os.environ:
                continue
            os.environ[key] = value.strip().strip("'").strip('"')


def _configure_logging() -> None:
    level = os.getenv("WAYFINDING_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _preload_floors() -> None:
    """Build the routing graph from `WAYFINDING_DATA_DIR` when it is set."""
    data_dir = os.getenv("WAYFINDING_DATA_DIR", "").strip()
    if not data_dir:
        return

    connectors_path = os.getenv("WAYFINDING_CONNECTORS", "").strip()
    connector_table = load_connector_table(connectors_path) if connectors_path else None

    graphs, failures = load_floor_graphs(data_dir)
    if not graphs:
        logger.warning("No floor assets found in %s", data_dir)
        return
    try:
        graph = build_global_graph(graphs, connector_table)
    except BuildError as exc:
        logger.error("Could not build routing graph from %s: %s", data_dir, exc)
        return
    install_graph(graph, failures)


_load_local_env()
_configure_logging()
app = create_app()
_preload_floors()


if __name__ == "__main__":
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    reload_enabled = os.getenv("API_RELOAD", "true").lower() == "true"
    uvicorn.run("wayfinding.main:app", host=host, port=port, reload=reload_enabled)
