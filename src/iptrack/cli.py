"""Command line entry points for the project."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from iptrack import __version__
from iptrack.analysis.graph_loader import export_transition_graph, load_transition_graph, summarize_graph
from iptrack.config import DEFAULT_OUTPUT, TrackerConfig
from iptrack.replay import TraceFormatError, load_trace, replay_trace
from iptrack.tracker import ControlFlowTracker

app = typer.Typer(help="Record and inspect dynamic control-flow graphs.")


def _resolve_input(path: Path) -> Path:
    candidate = path.expanduser().resolve()
    if not candidate.exists():
        raise typer.BadParameter(f"Input not found: {candidate}")
    return candidate


@app.callback()
def main(
    display_version: bool = typer.Option(False, "--version", "-V", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output."),
) -> None:
    """Configure logging and print the package version when requested."""

    if display_version:
        typer.echo(__version__)
        raise typer.Exit()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("replay")
def replay(
    trace: Path = typer.Argument(..., help="Trace file with one '[thread-id] address' sample per line."),
    output: Path = typer.Option(DEFAULT_OUTPUT, "--output", "-o", help="Specify output file name."),
    max_samples: Optional[int] = typer.Option(None, min=0, help="Stop recording transitions once the sample count reaches this ceiling."),
) -> None:
    """Replay a recorded address trace and write its control-flow graph."""

    trace = _resolve_input(trace)
    try:
        samples = load_trace(trace)
    except TraceFormatError as exc:
        raise typer.BadParameter(f"{trace}: {exc}") from exc

    tracker = ControlFlowTracker(TrackerConfig(output_path=output.expanduser(), max_samples=max_samples))
    if tracker.serializer.closed:
        raise typer.BadParameter(f"Cannot write output file {output}")

    typer.echo(f"Replaying {sum(len(a) for a in samples.values())} samples from {len(samples)} thread(s)...")
    replay_trace(samples, tracker)

    if tracker.ingestor.saturated:
        typer.secho(f"Sample ceiling of {max_samples} reached; graph is partial.", fg=typer.colors.YELLOW)
    typer.secho(f"Control-flow graph written to {tracker.config.output_path}", fg=typer.colors.GREEN)


@app.command("summary")
def summary(
    graph_path: Path = typer.Argument(..., help="Graph file written by 'iptrack replay' or a live run."),
    json_output: Optional[Path] = typer.Option(None, "--json", help="Optional JSON export of the graph and summary."),
    limit: int = typer.Option(10, help="Maximum number of entry/exit nodes to list."),
) -> None:
    """Print node, edge and loop counts for a written graph."""

    graph_path = _resolve_input(graph_path)
    try:
        graph = load_transition_graph(graph_path)
    except ValueError as exc:
        raise typer.BadParameter(f"{graph_path}: {exc}") from exc

    result = summarize_graph(graph)
    typer.echo(f"Nodes: {result.node_count}")
    typer.echo(f"Edges: {result.edge_count}")
    typer.echo(f"Self loops: {result.self_loops}")
    typer.echo(f"Loops: {result.loops}")
    for title, nodes in (("Entry nodes", result.entry_nodes), ("Exit nodes", result.exit_nodes)):
        typer.echo(f"{title}: {len(nodes)}")
        for node in nodes[:limit]:
            typer.echo(f"  - {node}")
        if len(nodes) > limit:
            typer.echo(f"  ... ({len(nodes) - limit} more)")

    if json_output is not None:
        json_output = json_output.expanduser()
        export_transition_graph(graph, json_output)
        typer.secho(f"Graph exported to {json_output.resolve()}", fg=typer.colors.GREEN)


def run() -> None:
    """Entry point used by ``python -m iptrack.cli``."""

    app()


if __name__ == "__main__":
    run()
