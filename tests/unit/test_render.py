"""Unit tests for Graphviz description assembly and the layout adapter."""

import subprocess
from collections.abc import Sequence
from pathlib import Path

import pytest

from callslice.core.exceptions import RenderError
from callslice.core.graph import EdgeRecord
from callslice.core.models import ExtractionRequest, Node
from callslice.render import DotAssembler, run_layout
from callslice.render.dot import quote


def make_record(source: str, target: str, label: str | None = None) -> EdgeRecord:
    """Helper to create a forward edge record."""
    return EdgeRecord(source=source, target=target, caller=source, callee=target, label=label)


class TestDotAssembler:
    """Tests for the DotAssembler class."""

    def test_render(self) -> None:
        assembler = DotAssembler()
        assembler.emit(make_record("A", "B"))
        assembler.emit(make_record("B", "C", label="b.c:3\nb.c:9"))

        nodes = [
            Node(name="A", attributes={"style": "filled", "fillcolor": "lightblue"}),
            Node(name="B"),
            Node(name="C"),
        ]
        assert assembler.render(nodes) == (
            'digraph "callgraph" {\n'
            "\trankdir=LR;\n"
            '\tgraph [fontname="Helvetica"];\n'
            '\tnode [fontname="Helvetica"];\n'
            '\tedge [fontname="Helvetica"];\n'
            '\t"A" -> "B";\n'
            '\t"B" -> "C" [label="b.c:3\\nb.c:9"];\n'
            '\t"A" [fillcolor="lightblue", style="filled"];\n'
            '\t"B";\n'
            '\t"C";\n'
            "}\n"
        )

    def test_header_from_request(self) -> None:
        request = ExtractionRequest(roots=["A"], rankdir="TB", font="Courier", size="7.5,10")
        header = DotAssembler.from_request(request).header()
        assert "\trankdir=TB;" in header
        assert '\tsize="7.5,10";' in header
        assert '\tnode [fontname="Courier"];' in header

    def test_no_size_by_default(self) -> None:
        assert not any("size=" in line for line in DotAssembler().header())

    def test_retract_last(self) -> None:
        assembler = DotAssembler()
        assembler.emit(make_record("A", "B"))
        assembler.emit(make_record("A", "C"))

        assert assembler.retract_last() == make_record("A", "C")
        assert len(assembler) == 1
        assert assembler.records == [make_record("A", "B")]

    def test_retract_empty_raises(self) -> None:
        with pytest.raises(IndexError):
            DotAssembler().retract_last()

    def test_records_is_a_copy(self) -> None:
        assembler = DotAssembler()
        assembler.emit(make_record("A", "B"))
        assembler.records.clear()
        assert len(assembler) == 1

    def test_quote_escapes(self) -> None:
        assert quote('say "hi"') == '"say \\"hi\\""'
        assert quote("a\\b") == '"a\\\\b"'


class TestRunLayout:
    """Tests for the layout engine adapter."""

    def test_command_line(self, tmp_path: Path) -> None:
        calls: list[list[str]] = []

        def runner(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
            calls.append(list(cmd))
            return subprocess.CompletedProcess(cmd, 0, "", "")

        source = tmp_path / "in.gv"
        output = tmp_path / "out" / "graph.svg"
        result = run_layout(source, output, "svg", engine="dot", runner=runner)

        assert result == output
        assert output.parent.is_dir()
        assert calls == [["dot", "-Tsvg", "-o", str(output), str(source)]]

    def test_failure_raises(self, tmp_path: Path) -> None:
        def runner(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
            return subprocess.CompletedProcess(cmd, 1, "", "syntax error in line 3")

        with pytest.raises(RenderError) as exc_info:
            run_layout(tmp_path / "in.gv", tmp_path / "out.png", "png", engine="dot", runner=runner)
        assert "syntax error in line 3" in str(exc_info.value)

    def test_missing_engine_raises(self, tmp_path: Path) -> None:
        def runner(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
            raise FileNotFoundError(cmd[0])

        with pytest.raises(RenderError) as exc_info:
            run_layout(
                tmp_path / "in.gv", tmp_path / "out.svg", "svg", engine="nodot", runner=runner
            )
        assert "unavailable" in str(exc_info.value)
