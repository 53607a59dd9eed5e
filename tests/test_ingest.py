"""Tests for sample ingestion."""

from __future__ import annotations

import logging
import threading

from iptrack.ingest import TraceIngestor
from iptrack.store import SENTINEL_ADDRESS, TransitionStore


def _feed(ingestor: TraceIngestor, addresses: list[int]) -> None:
    for address in addresses:
        ingestor.on_sample(address)


def test_example_sequence() -> None:
    store = TransitionStore()
    ingestor = TraceIngestor(store)
    _feed(ingestor, [0x100, 0x104, 0x108, 0x104, 0x108, 0x10C])

    assert store.snapshot() == {
        0x100: {0x104},
        0x104: {0x108},
        0x108: {0x104, 0x10C},
    }
    assert ingestor.sample_count == 6
    assert ingestor.previous == 0x10C


def test_first_sample_records_nothing() -> None:
    store = TransitionStore()
    ingestor = TraceIngestor(store)
    assert ingestor.previous == SENTINEL_ADDRESS

    ingestor.on_sample(0x400000)

    assert store.snapshot() == {}
    assert ingestor.previous == 0x400000


def test_repeated_address_records_self_loop() -> None:
    store = TransitionStore()
    ingestor = TraceIngestor(store)
    _feed(ingestor, [0x10, 0x10, 0x10])

    assert store.snapshot() == {0x10: {0x10}}


def test_sample_ceiling_stops_recording(caplog) -> None:
    store = TransitionStore()
    ingestor = TraceIngestor(store, max_samples=3)

    with caplog.at_level(logging.WARNING, logger="iptrack.ingest"):
        _feed(ingestor, [0x1, 0x2, 0x3, 0x4, 0x5])

    assert store.snapshot() == {0x1: {0x2}}
    assert ingestor.saturated
    assert ingestor.sample_count == 5
    assert sum("ceiling" in record.getMessage() for record in caplog.records) == 1


def test_previous_is_tracked_per_thread() -> None:
    store = TransitionStore()
    ingestor = TraceIngestor(store)
    cycles = {
        1: [0x1000, 0x1004, 0x1008],
        2: [0x2000, 0x2004],
        3: [0x3000, 0x3004, 0x3008, 0x300C],
    }
    barrier = threading.Barrier(len(cycles))

    def worker(cycle: list[int]) -> None:
        barrier.wait()
        for _ in range(200):
            _feed(ingestor, cycle)

    threads = [threading.Thread(target=worker, args=(cycle,)) for cycle in cycles.values()]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    expected: dict[int, set[int]] = {}
    for cycle in cycles.values():
        for index, source in enumerate(cycle):
            expected.setdefault(source, set()).add(cycle[(index + 1) % len(cycle)])

    assert store.snapshot() == expected
    assert ingestor.sample_count == 200 * sum(len(cycle) for cycle in cycles.values())


def test_sample_at_ceiling_is_not_recorded() -> None:
    store = TransitionStore()
    ingestor = TraceIngestor(store, max_samples=2)
    _feed(ingestor, [0x1, 0x2, 0x3])

    assert store.snapshot() == {}
    assert ingestor.saturated
    assert ingestor.previous == 0x1
