"""Data models for subgraph extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from callslice.core.models import Node


@dataclass(frozen=True)
class EdgeRecord:
    """One emitted edge, printed from ``source`` to ``target``.

    ``caller``/``callee`` keep the real call direction, which differs from
    the printed one in reverse traversals.
    """

    source: str
    target: str
    caller: str
    callee: str
    label: str | None = None


@dataclass
class ExtractionSession:
    """Mutable state of one extraction run from a single root."""

    root: str
    visited: set[str] = field(default_factory=set)
    reached: dict[str, bool] = field(default_factory=dict)
    edge_count: int = 0
    retracted: int = 0
    # reference count per member: number of retained edges touching the node
    _members: dict[str, int] = field(default_factory=dict)
    _files: dict[str, str] = field(default_factory=dict)

    def add_member(self, node: Node) -> None:
        self._members[node.name] = self._members.get(node.name, 0) + 1
        if node.file is not None:
            self._files[node.name] = node.file

    def _drop_member(self, name: str) -> None:
        if name == self.root:
            return
        count = self._members.get(name, 0) - 1
        if count > 0:
            self._members[name] = count
        else:
            self._members.pop(name, None)

    def retain(self, source: Node, target: Node) -> None:
        """Account for a newly emitted edge."""
        self.add_member(source)
        self.add_member(target)
        self.edge_count += 1

    def release(self, record: EdgeRecord) -> None:
        """Account for a retracted edge."""
        self._drop_member(record.source)
        self._drop_member(record.target)
        self.edge_count -= 1
        self.retracted += 1

    @property
    def members(self) -> list[str]:
        """Nodes present in the output, in first-added order."""
        return list(self._members)

    @property
    def files(self) -> list[str]:
        """Declared source files of the member nodes."""
        return sorted({self._files[name] for name in self._members if name in self._files})


class RootStatus(Enum):
    """Outcome of processing one root of a request."""

    OK = "ok"
    EMPTY = "empty"
    RENDER_FAILED = "render-failed"


@dataclass
class ExtractionResult:
    """Everything produced for one root."""

    root: str
    status: RootStatus
    description: str = ""
    records: list[EdgeRecord] = field(default_factory=list)
    members: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    artifact: Path | None = None
    intermediate: Path | None = None
    error: str | None = None

    @property
    def edges(self) -> list[tuple[str, str]]:
        return [(r.source, r.target) for r in self.records]

    def __repr__(self) -> str:
        return (
            f"ExtractionResult(root={self.root!r}, status={self.status.value}, "
            f"edges={len(self.records)}, members={len(self.members)})"
        )
