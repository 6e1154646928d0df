"""Load a CallGraph from the collector's JSON output."""

from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import Any

from callslice.core.exceptions import InputError
from callslice.core.graph.base import CallGraph
from callslice.core.models import Node

logger = logging.getLogger(__name__)


def load_graph(path: Path) -> CallGraph:
    """Load a graph file. ``.gz`` files are decompressed transparently. O(V + E)."""
    path = Path(path)
    if not path.is_file():
        raise InputError(f"Graph source not found: {path}")

    opener = gzip.open if path.suffix == ".gz" else open
    try:
        with opener(path, "rt", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InputError(f"Cannot read graph source {path}: {e}") from e

    graph = load_from_dict(payload)
    logger.info("Loaded %s from %s", graph, path)
    return graph


def load_from_dict(payload: Any) -> CallGraph:
    """Build a graph from an already-decoded payload.

    Expected shape::

        {"nodes": [{"name": "f", "file": "f.c", "line": 3, "defined": true,
                    "calls": ["g", {"callee": "h", "sites": ["h~f.c:7"]}]}]}
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("nodes"), list):
        raise InputError("Graph source must be an object with a 'nodes' list")

    graph = CallGraph()
    pending: list[tuple[str, Any]] = []

    for index, entry in enumerate(payload["nodes"]):
        node = _parse_node(entry, index)
        graph.add_node(node)
        pending.append((node.name, entry.get("calls", [])))

    # Edges go in after every declaration so forward references don't become externs
    for caller, calls in pending:
        if not isinstance(calls, list):
            raise InputError(f"'calls' of '{caller}' must be a list")
        for call in calls:
            callee, sites = _parse_call(call, caller)
            graph.add_edge(caller, callee, sites)

    return graph


def _parse_node(entry: Any, index: int) -> Node:
    if not isinstance(entry, dict):
        raise InputError(f"Node #{index} must be an object")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise InputError(f"Node #{index} has no name")

    file = entry.get("file")
    line = entry.get("line")
    address = entry.get("address")
    if file is not None and not isinstance(file, str):
        raise InputError(f"Node '{name}': 'file' must be a string")
    if line is not None and (not isinstance(line, int) or isinstance(line, bool)):
        raise InputError(f"Node '{name}': 'line' must be an integer")
    if address is not None:
        address = str(address)

    defined = entry.get("defined", file is not None or address is not None)
    if not isinstance(defined, bool):
        raise InputError(f"Node '{name}': 'defined' must be a boolean")

    return Node(name=name, file=file, line=line, address=address, defined=defined)


def _parse_call(call: Any, caller: str) -> tuple[str, list[str]]:
    if isinstance(call, str) and call:
        return call, []
    if isinstance(call, dict):
        callee = call.get("callee")
        sites = call.get("sites", [])
        if isinstance(callee, str) and callee and isinstance(sites, list):
            if all(isinstance(site, str) for site in sites):
                return callee, sites
    raise InputError(f"Malformed call entry in '{caller}': {call!r}")
