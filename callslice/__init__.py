"""
Callslice: filtered subgraphs of whole-program call graphs.

Callslice loads a call graph produced by an external collector once and
extracts small, readable subgraphs from it:
- Forward ("what does X call") or reverse ("what calls X") traversal
- Depth bounds, ignore/show filters and a built-in noise trim list
- Path pruning down to the edges that reach a chosen end function
- A daemon that keeps the graph resident between requests

Usage:
    from callslice.core.graph import load_graph
    from callslice.core.models import ExtractionRequest
    from callslice.server import RequestServer

    server = RequestServer(load_graph(Path("kernel.json")))
    server.handle(ExtractionRequest(roots=["vfs_read"], max_depth=3))
"""

__version__ = "0.1.0"
