"""Data models for Callslice."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from callslice.config import (
    DEFAULT_FONT,
    DEFAULT_FORMAT,
    DEFAULT_RANKDIR,
    INTERMEDIATE_SUFFIX,
    OUTPUT_FORMATS,
    PLAIN_FORMAT,
    RANKDIRS,
    default_output_path,
)
from callslice.core.exceptions import ConfigError

SITE_SEPARATOR = "~"


class Direction(Enum):
    """Which edge list a traversal walks."""

    FORWARD = "forward"
    REVERSE = "reverse"


@dataclass
class Edge:
    """A call relationship from caller to callee.

    ``sites`` holds raw call-site tags of the form ``target~location``.
    """

    caller: str
    callee: str
    sites: list[str] = field(default_factory=list)

    def locations(self, target: str | None = None) -> list[str]:
        """Call-site locations whose recorded target is ``target``.

        Tags without a target belong to the edge's own callee.
        """
        target = self.callee if target is None else target
        result = []
        for tag in self.sites:
            tag_target, sep, location = tag.partition(SITE_SEPARATOR)
            if not sep:
                tag_target, location = self.callee, tag
            if tag_target == target and location:
                result.append(location)
        return result


@dataclass
class Node:
    """A function or symbol in the call graph."""

    name: str
    file: str | None = None
    line: int | None = None
    address: str | None = None
    defined: bool = True
    callees: list[Edge] = field(default_factory=list)
    callers: list[Edge] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def is_extern(self) -> bool:
        return not self.defined

    @property
    def location(self) -> str | None:
        if self.file is not None:
            return f"{self.file}:{self.line}" if self.line is not None else self.file
        return self.address

    def relations(self, direction: Direction) -> list[Edge]:
        """Edges walked from this node in the given direction."""
        return self.callees if direction is Direction.FORWARD else self.callers

    def __repr__(self) -> str:
        return f"Node({self.name!r}, callees={len(self.callees)}, callers={len(self.callers)})"


@dataclass
class ExtractionRequest:
    """Parameters of one extraction request.

    ``max_depth`` of None means unbounded.
    """

    roots: list[str] = field(default_factory=list)
    root_patterns: list[str] = field(default_factory=list)
    direction: Direction = Direction.FORWARD
    max_depth: int | None = None
    ignore: list[str] = field(default_factory=list)
    ignore_patterns: list[str] = field(default_factory=list)
    show: list[str] = field(default_factory=list)
    show_patterns: list[str] = field(default_factory=list)
    trim: bool = False
    no_extern: bool = False
    all_locations: bool = False
    end_function: str | None = None
    output: Path = field(default_factory=lambda: default_output_path(DEFAULT_FORMAT))
    output_format: str = DEFAULT_FORMAT
    font: str = DEFAULT_FONT
    size: str | None = None
    rankdir: str = DEFAULT_RANKDIR
    keep_intermediate: bool = False

    def validate(self) -> None:
        """Raise ConfigError for invalid parameter combinations."""
        if not self.roots and not self.root_patterns:
            raise ConfigError("No root function specified")
        if self.rankdir not in RANKDIRS:
            raise ConfigError(
                f"Unknown layout direction '{self.rankdir}' (expected one of {', '.join(RANKDIRS)})"
            )
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(f"Unknown output format '{self.output_format}'")
        if str(self.output) == "-" and self.output_format != PLAIN_FORMAT:
            raise ConfigError(f"Only the '{PLAIN_FORMAT}' format can be written to stdout")
        if (
            self.keep_intermediate
            and self.output_format != PLAIN_FORMAT
            and self.output.suffix == INTERMEDIATE_SUFFIX
        ):
            raise ConfigError(
                f"Output {self.output} clashes with the kept {INTERMEDIATE_SUFFIX} description"
            )
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigError(f"Max depth must be >= 0, got {self.max_depth}")
