"""CLI entry point for Callslice."""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from callslice import __version__
from callslice.config import (
    DEFAULT_FONT,
    DEFAULT_FORMAT,
    DEFAULT_RANKDIR,
    ENV_FIFO,
    ENV_GRAPH,
    ENV_LOG_FILE,
    RearmPolicy,
    default_output_path,
    get_default_fifo_path,
)
from callslice.core.exceptions import CallsliceError
from callslice.core.graph import CallGraph, RootStatus, load_graph
from callslice.core.graph.filters import compile_patterns
from callslice.core.graph.models import ExtractionResult
from callslice.core.models import Direction, ExtractionRequest
from callslice.log import setup_logging
from callslice.server import FifoChannel, RequestServer, encode_request, send_record
from callslice.server.daemon import STDOUT
from callslice.server.protocol import split_list

app = typer.Typer(
    name="callslice",
    help="Filtered subgraphs of whole-program call graphs.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

GraphOption = Annotated[
    Path,
    typer.Option("--graph", "-g", envvar=ENV_GRAPH, help="Call graph JSON from the collector"),
]
FifoOption = Annotated[
    Path | None,
    typer.Option("--fifo", envvar=ENV_FIFO, help="Daemon request channel (named pipe)"),
]
LogFileOption = Annotated[
    Path | None,
    typer.Option("--log-file", envvar=ENV_LOG_FILE, help="Write status and errors to this file"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Log debug details")]

RootOption = Annotated[
    list[str] | None, typer.Option("--root", "-r", help="Root function(s), ';'-separated")
]
RootPatternOption = Annotated[
    list[str] | None, typer.Option("--root-pattern", "-R", help="Regex selecting more roots")
]
DirectionOption = Annotated[
    Direction, typer.Option("--direction", "-D", help="forward: callees, reverse: callers")
]
DepthOption = Annotated[
    int | None, typer.Option("--depth", "-d", help="Maximum traversal depth (default: unbounded)")
]
IgnoreOption = Annotated[
    list[str] | None, typer.Option("--ignore", "-i", help="Functions to exclude, ';'-separated")
]
IgnorePatternOption = Annotated[
    list[str] | None, typer.Option("--ignore-pattern", "-I", help="Regex of functions to exclude")
]
ShowOption = Annotated[
    list[str] | None,
    typer.Option("--show", "-s", help="Functions to show but not expand, ';'-separated"),
]
ShowPatternOption = Annotated[
    list[str] | None,
    typer.Option("--show-pattern", "-S", help="Regex of functions to show but not expand"),
]
TrimOption = Annotated[
    bool, typer.Option("--trim", "-t", help="Exclude the built-in list of noise functions")
]
NoExternOption = Annotated[
    bool, typer.Option("--no-extern", help="Exclude functions with no known definition")
]
EndOption = Annotated[
    str | None, typer.Option("--end", "-e", help="Keep only paths that reach this function")
]
LocationsOption = Annotated[
    bool, typer.Option("--all-locations", "-l", help="Label edges with their call sites")
]
OutputOption = Annotated[
    Path | None,
    typer.Option(
        "--output", "-o", help="Output file (default callgraph.<format>), or '-' for stdout"
    ),
]
FormatOption = Annotated[
    str, typer.Option("--format", "-f", help="plain, or a Graphviz format (svg, png, pdf, ...)")
]
FontOption = Annotated[str, typer.Option("--font", help="Font name")]
SizeOption = Annotated[str | None, typer.Option("--size", help="Graphviz size, e.g. '11,8.5'")]
RankdirOption = Annotated[str, typer.Option("--rankdir", help="Layout direction: TB, LR, BT, RL")]
KeepOption = Annotated[
    bool, typer.Option("--keep", "-k", help="Keep the .gv description next to the output")
]


def _build_request(
    root: list[str] | None,
    root_pattern: list[str] | None,
    direction: Direction,
    depth: int | None,
    ignore: list[str] | None,
    ignore_pattern: list[str] | None,
    show: list[str] | None,
    show_pattern: list[str] | None,
    trim: bool,
    no_extern: bool,
    end: str | None,
    all_locations: bool,
    output: Path,
    output_format: str,
    font: str,
    size: str | None,
    rankdir: str,
    keep: bool,
) -> ExtractionRequest:
    def names(values: list[str] | None) -> list[str]:
        return [name for value in values or [] for name in split_list(value)]

    return ExtractionRequest(
        roots=names(root),
        root_patterns=list(root_pattern or []),
        direction=direction,
        max_depth=depth,
        ignore=names(ignore),
        ignore_patterns=list(ignore_pattern or []),
        show=names(show),
        show_patterns=list(show_pattern or []),
        trim=trim,
        no_extern=no_extern,
        all_locations=all_locations,
        end_function=end,
        output=output,
        output_format=output_format,
        font=font,
        size=size,
        rankdir=rankdir.upper(),
        keep_intermediate=keep,
    )


def _fail(error: CallsliceError) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {error}")
    return typer.Exit(code=1)


def _load(graph: Path) -> CallGraph:
    try:
        return load_graph(graph)
    except CallsliceError as e:
        raise _fail(e) from e


def _print_results(results: list[ExtractionResult], out: Console) -> None:
    for result in results:
        if result.status is RootStatus.OK:
            target = result.artifact or "stdout"
            out.print(
                f"[green]{result.root}[/green]: {len(result.records)} edges, "
                f"{len(result.members)} nodes [dim]→ {target}[/]"
            )
        elif result.status is RootStatus.EMPTY:
            out.print(f"[yellow]{result.root}[/yellow]: empty result ({result.error})")
        else:
            out.print(f"[red]{result.root}[/red]: {result.error}")
            if result.intermediate:
                out.print(f"  [dim]Description kept at {result.intermediate}[/]")


def _version_callback(display_version: bool) -> None:
    if display_version:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    display_version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Filtered subgraphs of whole-program call graphs."""


@app.command()
def extract(
    graph: GraphOption,
    root: RootOption = None,
    root_pattern: RootPatternOption = None,
    direction: DirectionOption = Direction.FORWARD,
    depth: DepthOption = None,
    ignore: IgnoreOption = None,
    ignore_pattern: IgnorePatternOption = None,
    show: ShowOption = None,
    show_pattern: ShowPatternOption = None,
    trim: TrimOption = False,
    no_extern: NoExternOption = False,
    end: EndOption = None,
    all_locations: LocationsOption = False,
    output: OutputOption = None,
    output_format: FormatOption = DEFAULT_FORMAT,
    font: FontOption = DEFAULT_FONT,
    size: SizeOption = None,
    rankdir: RankdirOption = DEFAULT_RANKDIR,
    keep: KeepOption = False,
    log_file: LogFileOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Load the graph, extract subgraphs for the roots, render them and exit."""
    setup_logging("DEBUG" if verbose else "INFO", log_file)
    output = output or default_output_path(output_format)
    request = _build_request(
        root, root_pattern, direction, depth, ignore, ignore_pattern, show, show_pattern,
        trim, no_extern, end, all_locations, output, output_format, font, size, rankdir, keep,
    )
    try:
        request.validate()
    except CallsliceError as e:
        raise _fail(e) from e

    server = RequestServer(_load(graph))
    try:
        results = server.handle(request)
    except CallsliceError as e:
        raise _fail(e) from e

    _print_results(results, err_console if request.output == STDOUT else console)
    if any(r.status is RootStatus.RENDER_FAILED for r in results):
        raise typer.Exit(code=1)


@app.command()
def submit(
    root: RootOption = None,
    root_pattern: RootPatternOption = None,
    direction: DirectionOption = Direction.FORWARD,
    depth: DepthOption = None,
    ignore: IgnoreOption = None,
    ignore_pattern: IgnorePatternOption = None,
    show: ShowOption = None,
    show_pattern: ShowPatternOption = None,
    trim: TrimOption = False,
    no_extern: NoExternOption = False,
    end: EndOption = None,
    all_locations: LocationsOption = False,
    output: OutputOption = None,
    output_format: FormatOption = DEFAULT_FORMAT,
    font: FontOption = DEFAULT_FONT,
    size: SizeOption = None,
    rankdir: RankdirOption = DEFAULT_RANKDIR,
    keep: KeepOption = False,
    fifo: FifoOption = None,
) -> None:
    """Send one request to a running daemon (client mode)."""
    output = output or default_output_path(output_format)
    if output != STDOUT:
        # The daemon resolves paths against its own working directory
        output = output.expanduser().resolve()
    request = _build_request(
        root, root_pattern, direction, depth, ignore, ignore_pattern, show, show_pattern,
        trim, no_extern, end, all_locations, output, output_format, font, size, rankdir, keep,
    )
    channel = fifo or get_default_fifo_path()
    try:
        request.validate()
        send_record(channel, encode_request(request))
    except CallsliceError as e:
        raise _fail(e) from e

    roots = ";".join(request.roots + request.root_patterns)
    console.print(f"[green]Submitted[/green] [cyan]{roots}[/cyan] to {channel}")
    console.print(f"  [dim]Output: {request.output}[/]")


@app.command()
def daemon(
    graph: GraphOption,
    fifo: FifoOption = None,
    log_file: LogFileOption = None,
    verbose: VerboseOption = False,
    idle_budget: Annotated[
        float, typer.Option("--idle-budget", help="Seconds idle before the channel is reopened")
    ] = RearmPolicy.idle_budget,
) -> None:
    """Keep the graph loaded and serve requests from a named pipe forever."""
    logger = setup_logging("DEBUG" if verbose else "INFO", log_file)
    server = RequestServer(_load(graph))
    policy = RearmPolicy(idle_budget=idle_budget)

    try:
        with FifoChannel(fifo or get_default_fifo_path()) as channel:
            server.serve(channel, policy)
    except CallsliceError as e:
        raise _fail(e) from e
    except KeyboardInterrupt:
        logger.info("Daemon stopped")


@app.command()
def stats(
    graph: GraphOption,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show graph statistics."""
    loaded = _load(graph)
    result = {
        "nodes": loaded.num_nodes,
        "edges": loaded.num_edges,
        "externs": loaded.num_externs,
    }

    if output_json:
        print(json.dumps(result))
    else:
        console.print(f"Nodes: {result['nodes']}")
        console.print(f"Edges: {result['edges']}")
        console.print(f"Externs: {result['externs']}")


@app.command()
def find(
    pattern: Annotated[str, typer.Argument(help="Regex to match function names against")],
    graph: GraphOption,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum matches to list")] = 50,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Search for functions by name, e.g. to pick roots or patterns."""
    loaded = _load(graph)
    try:
        (regex,) = compile_patterns([pattern])
    except CallsliceError as e:
        raise _fail(e) from e
    nodes = loaded.match(regex)

    if output_json:
        result = [
            {
                "name": node.name,
                "location": node.location,
                "extern": node.is_extern,
                "callers": len(node.callers),
                "callees": len(node.callees),
            }
            for node in nodes[:limit]
        ]
        print(json.dumps(result))
        return

    if not nodes:
        console.print(f"No matches for '[cyan]{pattern}[/cyan]'")
        return
    for node in nodes[:limit]:
        kind = "extern" if node.is_extern else f"{len(node.callees)} callees"
        console.print(f"[cyan]{node.name}[/cyan] ({kind}, {len(node.callers)} callers)")
        if node.location:
            console.print(f"  {node.location}")
    if len(nodes) > limit:
        console.print(f"[dim]... {len(nodes) - limit} more[/]")


if __name__ == "__main__":
    app()
