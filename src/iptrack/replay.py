"""Replay recorded address traces through a :class:`ControlFlowTracker`.

A trace holds one sample per line, either ``<hex-address>`` for the main
thread or ``<thread-id> <hex-address>``. Blank lines and ``#`` comments are
ignored.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List

from iptrack.store import SENTINEL_ADDRESS
from iptrack.tracker import ControlFlowTracker

LOGGER = logging.getLogger(__name__)

MAIN_THREAD_ID = 0


class TraceFormatError(ValueError):
    """Raised when a trace line cannot be parsed."""


def _parse_address(token: str, lineno: int) -> int:
    try:
        address = int(token, 16)
    except ValueError as exc:
        raise TraceFormatError(f"line {lineno}: invalid address {token!r}") from exc
    if address < 0:
        raise TraceFormatError(f"line {lineno}: negative address {token!r}")
    if address == SENTINEL_ADDRESS:
        raise TraceFormatError(f"line {lineno}: address {token!r} is reserved as the no-previous-instruction marker")
    return address


def parse_trace(lines: Iterable[str]) -> Dict[int, List[int]]:
    """Group the samples of a trace by thread id, preserving order."""

    samples: Dict[int, List[int]] = defaultdict(list)
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) == 1:
            thread_id = MAIN_THREAD_ID
            token = parts[0]
        elif len(parts) == 2:
            try:
                thread_id = int(parts[0])
            except ValueError as exc:
                raise TraceFormatError(f"line {lineno}: invalid thread id {parts[0]!r}") from exc
            token = parts[1]
        else:
            raise TraceFormatError(f"line {lineno}: expected '[thread-id] address', got {line!r}")
        samples[thread_id].append(_parse_address(token, lineno))
    return dict(samples)


def load_trace(path: Path) -> Dict[int, List[int]]:
    with Path(path).open("r", encoding="utf-8") as handle:
        return parse_trace(handle)


def _run_thread(tracker: ControlFlowTracker, thread_id: int, addresses: List[int]) -> None:
    tracker.on_thread_start(thread_id)
    try:
        for address in addresses:
            tracker.on_instruction_sample(address)
    finally:
        tracker.on_thread_fini(thread_id, 0)


def replay_trace(samples: Dict[int, List[int]], tracker: ControlFlowTracker) -> None:
    """Feed ``samples`` to ``tracker`` the way a live engine would.

    The main thread starts first and ends last; every other thread id runs
    on its own ``threading.Thread`` concurrently. Process exit is signalled
    at the end.
    """

    tracker.on_thread_start(MAIN_THREAD_ID)
    workers = [
        threading.Thread(
            target=_run_thread,
            args=(tracker, thread_id, addresses),
            name=f"iptrack-replay-{thread_id}",
        )
        for thread_id, addresses in sorted(samples.items())
        if thread_id != MAIN_THREAD_ID
    ]
    try:
        for worker in workers:
            worker.start()
        for address in samples.get(MAIN_THREAD_ID, []):
            tracker.on_instruction_sample(address)
        for worker in workers:
            worker.join()
    finally:
        tracker.on_thread_fini(MAIN_THREAD_ID, 0)
        tracker.on_process_exit(0)
    LOGGER.debug("Replayed %s thread(s), %s samples", len(samples), tracker.ingestor.sample_count)


__all__ = ["MAIN_THREAD_ID", "TraceFormatError", "load_trace", "parse_trace", "replay_trace"]
