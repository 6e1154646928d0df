"""
Call graph data structures and algorithms.

Data Structures:
    - CallGraph: Name-keyed store with O(1) lookups and an attribute overlay
    - ExtractionSession: Visited/membership/reach state of one run
    - EdgeRecord: One emitted edge of an extracted subgraph

Algorithms:
    - filters: Ignore/show/trim rules with explicit precedence
    - traversal: Filter-aware DFS extraction with path pruning

Loading:
    - load_graph(): Load a collector JSON file (optionally gzipped)
    - load_from_dict(): Build a graph from a decoded payload
"""

from callslice.core.graph.base import CallGraph
from callslice.core.graph.filters import TRIM_SET, FilterRegistry, Verdict
from callslice.core.graph.loader import load_from_dict, load_graph
from callslice.core.graph.models import (
    EdgeRecord,
    ExtractionResult,
    ExtractionSession,
    RootStatus,
)
from callslice.core.graph.traversal import SubgraphExtractor

__all__ = [
    "CallGraph",
    "EdgeRecord",
    "ExtractionResult",
    "ExtractionSession",
    "FilterRegistry",
    "RootStatus",
    "SubgraphExtractor",
    "TRIM_SET",
    "Verdict",
    "load_from_dict",
    "load_graph",
]
