"""Graphviz description assembly."""

from __future__ import annotations

from collections.abc import Iterable

from callslice.config import DEFAULT_FONT, DEFAULT_RANKDIR
from callslice.core.graph.models import EdgeRecord
from callslice.core.models import ExtractionRequest, Node


def quote(text: str) -> str:
    """Quote a string as a Graphviz ID."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _label(text: str) -> str:
    # Graphviz reads a literal \n inside a quoted label as a line break
    return "\\n".join(quote(line)[1:-1] for line in text.split("\n"))


class DotAssembler:
    """Collects edge records for one run and renders them as a digraph.

    Records are kept on a stack so the latest emission can be undone.
    """

    def __init__(
        self,
        *,
        rankdir: str = DEFAULT_RANKDIR,
        font: str = DEFAULT_FONT,
        size: str | None = None,
        name: str = "callgraph",
    ) -> None:
        self._records: list[EdgeRecord] = []
        self.rankdir = rankdir
        self.font = font
        self.size = size
        self.name = name

    @classmethod
    def from_request(cls, request: ExtractionRequest) -> DotAssembler:
        return cls(rankdir=request.rankdir, font=request.font, size=request.size)

    def emit(self, record: EdgeRecord) -> None:
        self._records.append(record)

    def retract_last(self) -> EdgeRecord:
        """Remove and return the most recently emitted record."""
        if not self._records:
            raise IndexError("No emitted edge to retract")
        return self._records.pop()

    @property
    def records(self) -> list[EdgeRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def header(self) -> list[str]:
        lines = [f"digraph {quote(self.name)} {{", f"\trankdir={self.rankdir};"]
        if self.size:
            lines.append(f"\tsize={quote(self.size)};")
        font = quote(self.font)
        lines.append(f"\tgraph [fontname={font}];")
        lines.append(f"\tnode [fontname={font}];")
        lines.append(f"\tedge [fontname={font}];")
        return lines

    def render(self, nodes: Iterable[Node]) -> str:
        """Serialize retained edges, then one attribute statement per node."""
        lines = self.header()
        for record in self._records:
            statement = f"\t{quote(record.source)} -> {quote(record.target)}"
            if record.label:
                statement += f' [label="{_label(record.label)}"]'
            lines.append(statement + ";")
        for node in nodes:
            attrs = ", ".join(
                f"{key}={quote(value)}" for key, value in sorted(node.attributes.items())
            )
            lines.append(f"\t{quote(node.name)} [{attrs}];" if attrs else f"\t{quote(node.name)};")
        lines.append("}")
        return "\n".join(lines) + "\n"
