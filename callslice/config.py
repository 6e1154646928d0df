"""Configuration defaults for Callslice."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

ENV_GRAPH = "CALLSLICE_GRAPH"
ENV_FIFO = "CALLSLICE_FIFO"
ENV_LOG_FILE = "CALLSLICE_LOG_FILE"
ENV_DOT = "CALLSLICE_DOT"

DEFAULT_FORMAT = "svg"
DEFAULT_FONT = "Helvetica"
DEFAULT_RANKDIR = "LR"
DEFAULT_LAYOUT_ENGINE = "dot"

# "plain" writes the graph description itself, everything else goes through the layout engine
PLAIN_FORMAT = "plain"
RENDER_FORMATS = frozenset({"svg", "png", "pdf", "ps", "jpg", "gif", "dot"})
OUTPUT_FORMATS = RENDER_FORMATS | {PLAIN_FORMAT}
RANKDIRS = ("TB", "LR", "BT", "RL")

FIFO_NAME = "callslice.fifo"
DEFAULT_OUTPUT_STEM = "callgraph"
INTERMEDIATE_SUFFIX = ".gv"


@dataclass(frozen=True)
class RearmPolicy:
    """How long the daemon waits on its channel before reopening it.

    The server waits ``short_interval`` seconds per receive while it has been
    idle for less than ``short_window`` seconds, then ``long_interval``. Once
    ``idle_budget`` seconds pass without a request the endpoint is reopened.
    """

    short_interval: float = 0.05
    short_window: float = 1.0
    long_interval: float = 0.5
    idle_budget: float = 30.0

    def interval(self, idle: float) -> float:
        return self.short_interval if idle < self.short_window else self.long_interval


def default_output_path(output_format: str) -> Path:
    """Default artifact path, suffixed after the output format."""
    suffix = INTERMEDIATE_SUFFIX if output_format == PLAIN_FORMAT else f".{output_format}"
    return Path(DEFAULT_OUTPUT_STEM + suffix)


def get_default_fifo_path() -> Path:
    """Get the default daemon channel path."""
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    base = Path(runtime_dir) if runtime_dir else Path(tempfile.gettempdir())
    return base / FIFO_NAME


def get_layout_engine() -> str:
    """Get the layout engine executable, overridable through the environment."""
    return os.environ.get(ENV_DOT, DEFAULT_LAYOUT_ENGINE)
