"""Core CallGraph class keyed by symbol name."""

from __future__ import annotations

import re
from collections.abc import Iterator

from callslice.core.exceptions import SymbolNotFoundError
from callslice.core.models import Direction, Edge, Node


class CallGraph:
    """Directed graph for call relationships.

    Nodes keep their own caller/callee edge lists, so neighbor lookup is O(1)
    once a node is resolved. Topology is fixed after loading; only node
    attributes change, through ``set_attribute`` and ``reset_attributes``.
    """

    __slots__ = ("_nodes", "_edges", "_saved_attributes")

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[tuple[str, str], Edge] = {}
        self._saved_attributes: dict[str, dict[str, str]] = {}

    def add_node(self, node: Node) -> Node:
        """Add a node, merging declaration data into an extern placeholder. O(1)."""
        existing = self._nodes.get(node.name)
        if existing is None:
            self._nodes[node.name] = node
            return node
        if node.defined and not existing.defined:
            existing.file = node.file
            existing.line = node.line
            existing.address = node.address
            existing.defined = True
        return existing

    def add_edge(self, caller: str, callee: str, sites: list[str] | None = None) -> Edge:
        """Add a call edge, creating extern nodes for unknown endpoints. O(1).

        Repeated caller/callee pairs merge into one edge with all call sites.
        """
        edge = self._edges.get((caller, callee))
        if edge is None:
            edge = Edge(caller=caller, callee=callee)
            self._edges[(caller, callee)] = edge
            self._ensure(caller).callees.append(edge)
            self._ensure(callee).callers.append(edge)
        if sites:
            edge.sites.extend(sites)
        return edge

    def _ensure(self, name: str) -> Node:
        node = self._nodes.get(name)
        if node is None:
            node = Node(name=name, defined=False)
            self._nodes[name] = node
        return node

    def resolve(self, name: str) -> Node:
        """Get node by exact name. O(1)."""
        node = self._nodes.get(name)
        if node is None:
            raise SymbolNotFoundError(f"Symbol '{name}' not found")
        return node

    def neighbors(self, node: Node, direction: Direction) -> Iterator[tuple[Node, Edge]]:
        """Yield (next node, edge) pairs walked from ``node`` in ``direction``."""
        if direction is Direction.FORWARD:
            for edge in node.callees:
                yield self._nodes[edge.callee], edge
        else:
            for edge in node.callers:
                yield self._nodes[edge.caller], edge

    def match(self, pattern: str | re.Pattern[str]) -> list[Node]:
        """Nodes whose names match a regular expression, sorted by name."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return sorted(
            (node for name, node in self._nodes.items() if regex.search(name)),
            key=lambda n: n.name,
        )

    def set_attribute(self, name: str, key: str, value: str) -> None:
        """Override a rendering attribute until the next ``reset_attributes``."""
        node = self.resolve(name)
        if name not in self._saved_attributes:
            self._saved_attributes[name] = dict(node.attributes)
        node.attributes[key] = value

    def reset_attributes(self) -> None:
        """Restore every attribute overridden since the last reset."""
        for name, saved in self._saved_attributes.items():
            self._nodes[name].attributes = saved
        self._saved_attributes = {}

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    @property
    def num_externs(self) -> int:
        return sum(1 for node in self._nodes.values() if node.is_extern)

    @property
    def nodes(self) -> dict[str, Node]:
        return self._nodes

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __repr__(self) -> str:
        return f"CallGraph(nodes={self.num_nodes}, edges={self.num_edges})"
