"""
Core module: data models, exceptions, and the in-memory call graph.

Models (models.py):
    - Node: A function or symbol, with caller/callee edge lists
    - Edge: A call relationship carrying call-site tags
    - ExtractionRequest: Parameters of one extraction request
    - Direction: Forward (callees) or reverse (callers) traversal

Exceptions (exceptions.py):
    - CallsliceError: Base exception for all callslice errors
    - ConfigError, InputError, SymbolNotFoundError, EmptyResultError,
      RenderError, ResourceError

Graph (graph/):
    - CallGraph, loaders, filters and the subgraph extractor
"""

from callslice.core.exceptions import (
    CallsliceError,
    ConfigError,
    EmptyResultError,
    InputError,
    RenderError,
    ResourceError,
    SymbolNotFoundError,
)
from callslice.core.models import Direction, Edge, ExtractionRequest, Node

__all__ = [
    # Models
    "Node",
    "Edge",
    "Direction",
    "ExtractionRequest",
    # Exceptions
    "CallsliceError",
    "ConfigError",
    "InputError",
    "SymbolNotFoundError",
    "EmptyResultError",
    "RenderError",
    "ResourceError",
]
