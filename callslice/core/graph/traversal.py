"""Filter-aware subgraph extraction using DFS traversal.

The walk keeps an explicit stack of frames instead of recursing, so deep
call chains cannot exhaust the interpreter stack. Edges are emitted in
depth-first order, which lets path pruning undo a dead branch by retracting
the most recently emitted record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from callslice.core.exceptions import EmptyResultError
from callslice.core.graph.filters import FilterRegistry
from callslice.core.graph.models import EdgeRecord, ExtractionSession
from callslice.core.models import Direction, Edge, ExtractionRequest, Node

if TYPE_CHECKING:
    from callslice.core.graph.base import CallGraph

logger = logging.getLogger(__name__)

ROOT_ATTRIBUTES = {"style": "filled", "fillcolor": "lightblue"}
SHOW_ATTRIBUTES = {"shape": "box", "peripheries": "2"}
EXTERN_ATTRIBUTES = {"style": "dashed", "fontcolor": "gray40"}
END_ATTRIBUTES = {"style": "filled", "fillcolor": "palegreen"}

LOCATION_SEPARATOR = "\n"


class EdgeSink(Protocol):
    """Receives emitted edges and can undo the latest one."""

    def emit(self, record: EdgeRecord) -> None: ...

    def retract_last(self) -> EdgeRecord: ...


@dataclass
class _Frame:
    node: Node
    depth: int
    relations: Iterator[tuple[Node, Edge]]
    reached: bool = False
    child: Node | None = None


class SubgraphExtractor:
    """Walks a CallGraph from a root, honoring filters, depth and pruning."""

    def __init__(
        self,
        graph: CallGraph,
        filters: FilterRegistry | None = None,
        *,
        direction: Direction = Direction.FORWARD,
        max_depth: int | None = None,
        end_function: str | None = None,
        all_locations: bool = False,
    ) -> None:
        self._graph = graph
        self._filters = filters or FilterRegistry()
        self._direction = direction
        self._max_depth = max_depth
        self._end_function = end_function
        self._all_locations = all_locations

    @classmethod
    def from_request(
        cls,
        graph: CallGraph,
        request: ExtractionRequest,
        filters: FilterRegistry | None = None,
    ) -> SubgraphExtractor:
        return cls(
            graph,
            filters or FilterRegistry.from_request(request),
            direction=request.direction,
            max_depth=request.max_depth,
            end_function=request.end_function,
            all_locations=request.all_locations,
        )

    @property
    def pruning(self) -> bool:
        return self._end_function is not None

    def extract(self, root_name: str, sink: EdgeSink) -> ExtractionSession:
        """Emit the filtered subgraph rooted at ``root_name`` into ``sink``.

        Raises SymbolNotFoundError for an unknown root and EmptyResultError
        when path pruning retracts every edge.
        """
        root = self._graph.resolve(root_name)
        session = ExtractionSession(root=root.name)
        session.add_member(root)
        self._mark(root, ROOT_ATTRIBUTES)
        if root.name == self._end_function:
            session.reached[root.name] = True

        session.visited.add(root.name)
        if self._filters.is_shown(root):
            self._mark(root, SHOW_ATTRIBUTES)
            stack = [_Frame(root, 0, iter(()))]
        else:
            stack = [self._enter(root, 0)]

        while stack:
            frame = stack[-1]
            if frame.child is not None:
                self._settle(frame, frame.child, session, sink)
                frame.child = None

            step = next(frame.relations, None)
            if step is None:
                stack.pop()
                if frame.reached:
                    session.reached[frame.node.name] = True
                continue

            child, edge = step
            if self._filters.classify(child).excluded:
                continue
            # Only the first-discovered path to an expanded node is kept
            if child.name in session.visited:
                continue

            self._emit(frame.node, child, edge, session, sink)
            if self._descends(child):
                session.visited.add(child.name)
                frame.child = child
                stack.append(self._enter(child, frame.depth + 1))
            else:
                self._settle(frame, child, session, sink)

        if self.pruning and session.edge_count == 0 and root.name != self._end_function:
            raise EmptyResultError(
                f"No path from '{root.name}' reaches '{self._end_function}' "
                f"({session.retracted} edges retracted)"
            )

        logger.debug(
            "Extracted %d edges from %s (%d visited, %d retracted)",
            session.edge_count,
            root.name,
            len(session.visited),
            session.retracted,
        )
        return session

    def _enter(self, node: Node, depth: int) -> _Frame:
        if self._max_depth is not None and depth >= self._max_depth:
            return _Frame(node, depth, iter(()))
        return _Frame(node, depth, self._graph.neighbors(node, self._direction))

    def _descends(self, child: Node) -> bool:
        if self._filters.is_shown(child):
            self._mark(child, SHOW_ATTRIBUTES)
            return False
        if self.pruning and child.name == self._end_function:
            return False
        return bool(child.relations(self._direction))

    def _emit(
        self,
        node: Node,
        child: Node,
        edge: Edge,
        session: ExtractionSession,
        sink: EdgeSink,
    ) -> None:
        label = None
        if self._all_locations:
            locations = edge.locations(edge.callee)
            if locations:
                label = LOCATION_SEPARATOR.join(locations)

        # Printed root-outward: caller->callee forward, callee->caller in reverse
        record = EdgeRecord(
            source=node.name,
            target=child.name,
            caller=edge.caller,
            callee=edge.callee,
            label=label,
        )
        sink.emit(record)
        session.retain(node, child)

        if child.is_extern:
            self._mark(child, EXTERN_ATTRIBUTES)
        if child.name == self._end_function:
            session.reached[child.name] = True
            self._mark(child, END_ATTRIBUTES)

    def _settle(
        self,
        frame: _Frame,
        child: Node,
        session: ExtractionSession,
        sink: EdgeSink,
    ) -> None:
        """Keep or retract the edge to ``child`` once its subtree is done."""
        if not self.pruning:
            return
        if session.reached.get(child.name, False):
            frame.reached = True
            return
        # Everything the child emitted was already retracted, so the top is frame->child
        record = sink.retract_last()
        session.release(record)
        session.reached.setdefault(child.name, False)

    def _mark(self, node: Node, attributes: dict[str, str]) -> None:
        for key, value in attributes.items():
            self._graph.set_attribute(node.name, key, value)
