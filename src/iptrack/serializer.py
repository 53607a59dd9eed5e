"""Render drained transitions as a ``digraph controlflow`` description."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import IO, Iterator, Mapping, Optional, Set

from iptrack.store import SENTINEL_ADDRESS

LOGGER = logging.getLogger(__name__)

GRAPH_HEADER = "digraph controlflow {\n"
GRAPH_FOOTER = "}\n"


def format_address(address: int) -> str:
    """Format an address the way ``printf("%p")`` does on Linux."""

    return f"0x{address:x}"


def render_transitions(transitions: Mapping[int, Set[int]]) -> Iterator[str]:
    """Yield the output lines, sources ascending then targets ascending.

    Edges leaving the sentinel address are dropped.
    """

    yield GRAPH_HEADER
    for source in sorted(transitions):
        if source == SENTINEL_ADDRESS:
            continue
        source_label = format_address(source)
        for target in sorted(transitions[source]):
            yield f'\t"{source_label}" -> "{format_address(target)}";\n'
    yield GRAPH_FOOTER


class GraphSerializer:
    """Own the output sink and write the graph to it at most once."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._sink: Optional[IO[str]] = self.open_sink(self.path)

    @staticmethod
    def open_sink(path: Path) -> Optional[IO[str]]:
        try:
            return path.open("w", encoding="ascii")
        except OSError as exc:
            LOGGER.warning("Cannot open trace output %s: %s", path, exc)
            return None

    @property
    def closed(self) -> bool:
        return self._sink is None

    def serialize(self, transitions: Mapping[int, Set[int]]) -> bool:
        """Write ``transitions`` and close the sink.

        Returns ``False`` when there was nothing to write to, either because
        the sink never opened or because it was already closed.
        """

        with self._lock:
            sink, self._sink = self._sink, None
        if sink is None:
            LOGGER.debug("Trace output %s unavailable, skipping serialization", self.path)
            return False

        edges = 0
        try:
            for line in render_transitions(transitions):
                sink.write(line)
                if line.startswith("\t"):
                    edges += 1
        except OSError as exc:
            LOGGER.warning("Failed writing trace output %s: %s", self.path, exc)
            return False
        finally:
            try:
                sink.close()
            except OSError as exc:
                LOGGER.warning("Failed closing trace output %s: %s", self.path, exc)
        LOGGER.info("Wrote %s transitions to %s", edges, self.path)
        return True


__all__ = ["GraphSerializer", "format_address", "render_transitions"]
