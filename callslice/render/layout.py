"""Adapter for the external Graphviz layout engine."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from callslice.config import get_layout_engine
from callslice.core.exceptions import RenderError

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]


def _run(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(list(cmd), check=False, text=True, capture_output=True)


def run_layout(
    source: Path,
    output: Path,
    output_format: str,
    *,
    engine: str | None = None,
    runner: Runner | None = None,
) -> Path:
    """Lay out ``source`` into ``output`` with the Graphviz engine."""
    engine = engine or get_layout_engine()
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)

    cmd = [engine, f"-T{output_format}", "-o", str(output), str(source)]
    logger.debug("Running %s", " ".join(cmd))
    try:
        completed = (runner or _run)(cmd)
    except OSError as e:
        raise RenderError(f"Layout engine '{engine}' is unavailable: {e}") from e

    if completed.returncode != 0:
        detail = (completed.stderr or "").strip() or f"exit status {completed.returncode}"
        raise RenderError(f"Layout engine '{engine}' failed on {source}: {detail}")
    return output
