"""
Rendering: turn extraction output into a graph description and artifacts.

Components:
    - DotAssembler: Edge record stack with undo, serialized as a Graphviz digraph
    - run_layout(): Invoke the Graphviz engine on a description file
"""

from callslice.render.dot import DotAssembler
from callslice.render.layout import run_layout

__all__ = ["DotAssembler", "run_layout"]
