"""Utilities for loading and summarising written control-flow graphs."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import networkx as nx

from iptrack.serializer import GRAPH_HEADER, GRAPH_FOOTER

EDGE_PATTERN = re.compile(r'^\s*"(0x[0-9a-fA-F]+)"\s*->\s*"(0x[0-9a-fA-F]+)"\s*;\s*$')


def _add_address_node(graph: nx.DiGraph, label: str) -> None:
    if label not in graph:
        graph.add_node(label, address=int(label, 16))


def parse_transition_graph(lines: Iterable[str], *, name: str = "controlflow") -> nx.DiGraph:
    """Build a directed graph from the lines of a ``digraph controlflow`` file."""

    graph = nx.DiGraph(name=name)
    opened = closed = False
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue
        if not opened:
            if line != GRAPH_HEADER.strip():
                raise ValueError(f"line {lineno}: expected graph header, got {line!r}")
            opened = True
            continue
        if line == GRAPH_FOOTER.strip():
            closed = True
            break
        match = EDGE_PATTERN.match(line)
        if match is None:
            raise ValueError(f"line {lineno}: unrecognised statement {line!r}")
        source, target = match.groups()
        _add_address_node(graph, source)
        _add_address_node(graph, target)
        graph.add_edge(source, target)

    if not closed:
        raise ValueError("Graph description is truncated (missing closing brace).")
    graph.graph["node_count"] = graph.number_of_nodes()
    graph.graph["edge_count"] = graph.number_of_edges()
    return graph


def load_transition_graph(path: Path) -> nx.DiGraph:
    """Load a graph written by :class:`iptrack.serializer.GraphSerializer`."""

    path = Path(path)
    with path.open("r", encoding="ascii") as handle:
        graph = parse_transition_graph(handle, name=path.stem)
    graph.graph["source"] = str(path.resolve())
    return graph


@dataclass
class GraphSummary:
    node_count: int
    edge_count: int
    self_loops: int
    loops: int
    entry_nodes: list[str] = field(default_factory=list)
    exit_nodes: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "self_loops": self.self_loops,
            "loops": self.loops,
            "entry_nodes": self.entry_nodes,
            "exit_nodes": self.exit_nodes,
        }


def _by_address(graph: nx.DiGraph, nodes: Iterable[str]) -> list[str]:
    return sorted(nodes, key=lambda node: graph.nodes[node].get("address", 0))


def summarize_graph(graph: nx.DiGraph) -> GraphSummary:
    """Count nodes, edges and loops; list nodes without predecessors or successors."""

    loops = sum(1 for component in nx.strongly_connected_components(graph) if len(component) > 1)
    return GraphSummary(
        node_count=graph.number_of_nodes(),
        edge_count=graph.number_of_edges(),
        self_loops=nx.number_of_selfloops(graph),
        loops=loops,
        entry_nodes=_by_address(graph, (node for node, degree in graph.in_degree() if degree == 0)),
        exit_nodes=_by_address(graph, (node for node, degree in graph.out_degree() if degree == 0)),
    )


def export_transition_graph(graph: nx.DiGraph, destination: Path) -> None:
    """Persist a transition graph and its summary to JSON."""

    destination = Path(destination)
    payload = {
        "graph": graph.graph.get("name", destination.stem),
        "source": graph.graph.get("source"),
        "summary": summarize_graph(graph).as_dict(),
        "nodes": [{"id": node, "address": data.get("address")} for node, data in graph.nodes(data=True)],
        "edges": [{"source": source, "target": target} for source, target in graph.edges()],
    }

    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


__all__ = [
    "GraphSummary",
    "export_transition_graph",
    "load_transition_graph",
    "parse_transition_graph",
    "summarize_graph",
]
