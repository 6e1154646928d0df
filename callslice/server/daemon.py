"""Request server: runs extraction requests against one resident graph."""

from __future__ import annotations

import logging
import re
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from callslice.config import INTERMEDIATE_SUFFIX, PLAIN_FORMAT, RearmPolicy
from callslice.core.exceptions import (
    CallsliceError,
    EmptyResultError,
    RenderError,
    ResourceError,
    SymbolNotFoundError,
)
from callslice.core.graph.base import CallGraph
from callslice.core.graph.filters import FilterRegistry, compile_patterns
from callslice.core.graph.models import ExtractionResult, RootStatus
from callslice.core.graph.traversal import SubgraphExtractor
from callslice.core.models import ExtractionRequest
from callslice.render.dot import DotAssembler
from callslice.render.layout import Runner, run_layout
from callslice.server.channel import FifoChannel
from callslice.server.protocol import decode_request

logger = logging.getLogger(__name__)

STDOUT = Path("-")

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9_.-]+")


def artifact_path(output: Path, root: str, multiple: bool) -> Path:
    """Output path for one root; several roots get ``stem-root.suffix`` files."""
    if not multiple or output == STDOUT:
        return output
    safe_root = _UNSAFE_FILENAME.sub("_", root)
    return output.with_name(f"{output.stem}-{safe_root}{output.suffix}")


class RequestServer:
    """Wraps one CallGraph and serves extraction requests, one at a time.

    Node attributes set during a root's extraction are reset before the next
    root or request runs.
    """

    def __init__(self, graph: CallGraph, *, runner: Runner | None = None) -> None:
        self._graph = graph
        self._runner = runner

    @property
    def graph(self) -> CallGraph:
        return self._graph

    def resolve_roots(self, request: ExtractionRequest) -> list[str]:
        """Explicit roots followed by pattern matches, without duplicates.

        Raises SymbolNotFoundError for a missing root or a pattern that
        matches nothing.
        """
        roots = [self._graph.resolve(name).name for name in request.roots]
        for pattern, regex in zip(request.root_patterns, compile_patterns(request.root_patterns)):
            matches = self._graph.match(regex)
            if not matches:
                raise SymbolNotFoundError(f"No symbol matches root pattern '{pattern}'")
            roots.extend(node.name for node in matches)
        return list(dict.fromkeys(roots))

    def extract(
        self,
        root: str,
        request: ExtractionRequest,
        filters: FilterRegistry | None = None,
    ) -> ExtractionResult:
        """Extract and describe the subgraph of one root.

        Raises EmptyResultError when pruning leaves nothing.
        """
        assembler = DotAssembler.from_request(request)
        extractor = SubgraphExtractor.from_request(self._graph, request, filters)
        try:
            session = extractor.extract(root, assembler)
            nodes = [self._graph.resolve(name) for name in session.members]
            description = assembler.render(nodes)
        finally:
            self._graph.reset_attributes()

        return ExtractionResult(
            root=root,
            status=RootStatus.OK,
            description=description,
            records=assembler.records,
            members=session.members,
            files=session.files,
        )

    def handle(self, request: ExtractionRequest) -> list[ExtractionResult]:
        """Run one request for all of its roots.

        Config, input, not-found and resource errors propagate. Empty results
        and render failures are logged and reported per root.
        """
        request.validate()
        filters = FilterRegistry.from_request(request)
        if request.end_function is not None:
            self._graph.resolve(request.end_function)
        roots = self.resolve_roots(request)
        multiple = len(roots) > 1

        results: list[ExtractionResult] = []
        with _workdir() as workdir:
            for root in roots:
                try:
                    result = self.extract(root, request, filters)
                except EmptyResultError as e:
                    logger.warning("%s", e)
                    results.append(
                        ExtractionResult(root=root, status=RootStatus.EMPTY, error=str(e))
                    )
                    continue
                self._write(result, request, workdir, multiple)
                results.append(result)
        return results

    def _write(
        self,
        result: ExtractionResult,
        request: ExtractionRequest,
        workdir: Path,
        multiple: bool,
    ) -> None:
        artifact = artifact_path(request.output, result.root, multiple)

        if request.output_format == PLAIN_FORMAT:
            if artifact == STDOUT:
                sys.stdout.write(result.description)
            else:
                _write_text(artifact, result.description)
                result.artifact = artifact
            logger.info("Wrote %s (%d edges)", artifact, len(result.records))
            return

        if request.keep_intermediate:
            intermediate = artifact.with_suffix(INTERMEDIATE_SUFFIX)
            result.intermediate = intermediate
        else:
            safe_root = _UNSAFE_FILENAME.sub("_", result.root)
            intermediate = workdir / f"{safe_root}{INTERMEDIATE_SUFFIX}"
        _write_text(intermediate, result.description)

        try:
            result.artifact = run_layout(
                intermediate, artifact, request.output_format, runner=self._runner
            )
        except RenderError as e:
            logger.error("%s", e)
            if result.intermediate is not None:
                logger.info("Kept graph description at %s", result.intermediate)
            result.status = RootStatus.RENDER_FAILED
            result.error = str(e)
            return
        logger.info("Rendered %s (%d edges)", result.artifact, len(result.records))

    def handle_record(self, record: str) -> list[ExtractionResult]:
        """Decode and run one daemon record, logging instead of raising."""
        try:
            request = decode_request(record)
            logger.info("Request for %s", ";".join(request.roots + request.root_patterns))
            return self.handle(request)
        except CallsliceError as e:
            logger.error("Request failed: %s", e)
        except Exception:
            logger.exception("Unexpected error while handling request")
        return []

    def serve(
        self,
        channel: FifoChannel,
        policy: RearmPolicy | None = None,
        *,
        max_requests: int | None = None,
    ) -> int:
        """Serve requests from ``channel`` until ``max_requests`` were handled.

        With no limit this never returns. Returns the number of requests handled.
        """
        policy = policy or RearmPolicy()
        handled = 0
        idle = 0.0
        logger.info("Waiting for requests on %s", channel.path)

        while max_requests is None or handled < max_requests:
            interval = policy.interval(idle)
            record = channel.receive(timeout=interval)
            if record is None:
                idle += interval
                if idle >= policy.idle_budget:
                    logger.debug("Idle for %.1fs, reopening %s", idle, channel.path)
                    channel.reopen()
                    idle = 0.0
                continue

            idle = 0.0
            self.handle_record(record)
            handled += 1

        return handled


def _write_text(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ResourceError(f"Cannot write {path}: {e}") from e


@contextmanager
def _workdir() -> Iterator[Path]:
    """Temporary per-request directory, removed on every exit path."""
    try:
        tmp = tempfile.TemporaryDirectory(prefix="callslice-")
    except OSError as e:
        raise ResourceError(f"Cannot create working directory: {e}") from e
    with tmp as name:
        yield Path(name)
