"""MCP server implementation for Callslice."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from callslice.config import ENV_GRAPH
from callslice.core.exceptions import CallsliceError, ConfigError
from callslice.core.graph import CallGraph, load_graph
from callslice.core.graph.filters import compile_patterns
from callslice.core.graph.models import ExtractionResult
from callslice.core.models import Direction, ExtractionRequest
from callslice.server import RequestServer

server = Server("callslice")

_STRING_LIST = {"type": "array", "items": {"type": "string"}}


@lru_cache(maxsize=1)
def _get_server() -> RequestServer:
    """Load the graph once and keep it resident for every tool call."""
    source = os.environ.get(ENV_GRAPH)
    if not source:
        raise FileNotFoundError(f"No call graph configured. Set {ENV_GRAPH} to a graph file.")
    return RequestServer(load_graph(Path(source)))


def _get_graph() -> CallGraph:
    return _get_server().graph


def _result_to_dict(result: ExtractionResult) -> dict[str, Any]:
    """Convert an ExtractionResult to a JSON-serializable dict."""
    return {
        "root": result.root,
        "edges": [
            {"from": r.source, "to": r.target, "locations": r.label.split("\n") if r.label else []}
            for r in result.records
        ],
        "nodes": result.members,
        "files": result.files,
        "description": result.description,
    }


@server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="callslice_extract",
            description=(
                "Extract a filtered call subgraph rooted at a function. Forward direction "
                "follows what the function calls, reverse follows what calls it. Returns "
                "edges, nodes, source files and a Graphviz description."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "root": {"type": "string", "description": "Root function name"},
                    "direction": {
                        "type": "string",
                        "enum": ["forward", "reverse"],
                        "default": "forward",
                    },
                    "max_depth": {
                        "type": "integer",
                        "description": "Maximum traversal depth (default: unbounded)",
                    },
                    "ignore": {**_STRING_LIST, "description": "Functions to exclude"},
                    "ignore_patterns": {**_STRING_LIST, "description": "Regexes to exclude"},
                    "show": {**_STRING_LIST, "description": "Functions to show, not expand"},
                    "trim": {
                        "type": "boolean",
                        "description": "Exclude built-in noise functions (locks, barriers, ...)",
                    },
                    "no_extern": {
                        "type": "boolean",
                        "description": "Exclude functions without a known definition",
                    },
                    "end_function": {
                        "type": "string",
                        "description": "Keep only paths that reach this function",
                    },
                    "all_locations": {
                        "type": "boolean",
                        "description": "Include call-site locations on edges",
                    },
                },
                "required": ["root"],
            },
        ),
        Tool(
            name="callslice_find",
            description="Search for functions whose names match a regular expression.",
            inputSchema={
                "type": "object",
                "properties": {
                    "pattern": {"type": "string", "description": "Regular expression"},
                    "limit": {"type": "integer", "default": 50},
                },
                "required": ["pattern"],
            },
        ),
        Tool(
            name="callslice_stats",
            description="Get node, edge and extern counts of the loaded call graph.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
    ]


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "callslice_extract":
            result = _handle_extract(arguments)
        elif name == "callslice_find":
            result = _handle_find(arguments["pattern"], arguments.get("limit", 50))
        elif name == "callslice_stats":
            result = _handle_stats()
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except (CallsliceError, FileNotFoundError) as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]


def _handle_extract(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handle callslice_extract tool."""
    try:
        direction = Direction(arguments.get("direction", "forward"))
    except ValueError as e:
        raise ConfigError(f"Unknown direction '{arguments['direction']}'") from e
    request = ExtractionRequest(
        roots=[arguments["root"]],
        direction=direction,
        max_depth=arguments.get("max_depth"),
        ignore=list(arguments.get("ignore", [])),
        ignore_patterns=list(arguments.get("ignore_patterns", [])),
        show=list(arguments.get("show", [])),
        trim=bool(arguments.get("trim", False)),
        no_extern=bool(arguments.get("no_extern", False)),
        end_function=arguments.get("end_function"),
        all_locations=bool(arguments.get("all_locations", False)),
    )
    request.validate()
    request_server = _get_server()
    if request.end_function is not None:
        request_server.graph.resolve(request.end_function)
    return _result_to_dict(request_server.extract(arguments["root"], request))


def _handle_find(pattern: str, limit: int) -> dict[str, Any]:
    """Handle callslice_find tool."""
    (regex,) = compile_patterns([pattern])
    nodes = _get_graph().match(regex)
    return {
        "results": [
            {
                "name": node.name,
                "location": node.location,
                "extern": node.is_extern,
                "callers": len(node.callers),
                "callees": len(node.callees),
            }
            for node in nodes[:limit]
        ],
        "total": len(nodes),
    }


def _handle_stats() -> dict[str, Any]:
    """Handle callslice_stats tool."""
    graph = _get_graph()
    return {
        "nodes": graph.num_nodes,
        "edges": graph.num_edges,
        "externs": graph.num_externs,
    }


async def serve() -> None:
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
