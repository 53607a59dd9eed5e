"""Thread-safe accumulator of observed address transitions."""

from __future__ import annotations

import threading
from typing import Dict, Set, Tuple

SENTINEL_ADDRESS = 0

Transitions = Dict[int, Set[int]]


class TransitionStore:
    """Mapping of source address to the set of successor addresses.

    All access goes through one lock. Insertion is idempotent and
    :meth:`drain` hands the whole mapping over while leaving the store empty.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._successors: Transitions = {}

    def record(self, source: int, target: int) -> None:
        with self._lock:
            targets = self._successors.get(source)
            if targets is None:
                self._successors[source] = {target}
            else:
                targets.add(target)

    def drain(self) -> Transitions:
        """Return every recorded transition and reset the store."""

        with self._lock:
            drained, self._successors = self._successors, {}
        return drained

    def snapshot(self) -> Transitions:
        with self._lock:
            return {source: set(targets) for source, targets in self._successors.items()}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(targets) for targets in self._successors.values())

    def __contains__(self, edge: Tuple[int, int]) -> bool:
        source, target = edge
        with self._lock:
            return target in self._successors.get(source, ())


__all__ = ["SENTINEL_ADDRESS", "TransitionStore", "Transitions"]
