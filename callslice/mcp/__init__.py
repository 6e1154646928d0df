"""
MCP server for Callslice.

Keeps one call graph resident and exposes extraction to LLMs via the Model
Context Protocol.

Tools:
    - callslice_extract: Filtered subgraph from a root function
    - callslice_find: Search functions by regular expression
    - callslice_stats: Graph statistics

Usage:
    Run: CALLSLICE_GRAPH=kernel.json callslice-mcp
"""

import asyncio

from callslice.mcp.server import serve as _serve


def serve() -> None:
    """Entry point for the MCP server."""
    asyncio.run(_serve())


__all__ = ["serve"]
