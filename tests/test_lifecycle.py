"""Tests for the thread lifecycle state machine."""

from __future__ import annotations

import threading

from iptrack.lifecycle import ThreadLifecycleCoordinator, TraceState


class _Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def test_last_thread_fini_finalizes_once() -> None:
    finalize = _Counter()
    coordinator = ThreadLifecycleCoordinator(finalize)
    assert coordinator.state is TraceState.IDLE

    coordinator.on_thread_start(0)
    coordinator.on_thread_start(1)
    assert coordinator.state is TraceState.TRACING
    assert coordinator.active_threads == 2

    coordinator.on_thread_fini(1, 0)
    assert finalize.calls == 0

    coordinator.on_thread_fini(0, 0)
    assert finalize.calls == 1
    assert coordinator.state is TraceState.DONE

    coordinator.on_process_exit(0)
    assert finalize.calls == 1


def test_process_exit_finalizes_with_live_threads() -> None:
    finalize = _Counter()
    coordinator = ThreadLifecycleCoordinator(finalize)
    coordinator.on_thread_start(0)
    coordinator.on_thread_start(1)

    coordinator.on_process_exit(3)
    assert finalize.calls == 1
    assert coordinator.state is TraceState.DONE

    coordinator.on_thread_fini(1)
    coordinator.on_thread_fini(0)
    assert finalize.calls == 1


def test_process_exit_without_threads() -> None:
    finalize = _Counter()
    coordinator = ThreadLifecycleCoordinator(finalize)

    coordinator.on_process_exit()
    coordinator.on_process_exit()

    assert finalize.calls == 1


def test_unmatched_fini_is_ignored() -> None:
    finalize = _Counter()
    coordinator = ThreadLifecycleCoordinator(finalize)

    coordinator.on_thread_fini(7)

    assert coordinator.active_threads == 0
    assert coordinator.state is TraceState.IDLE
    assert finalize.calls == 0


def test_finalize_error_is_contained() -> None:
    def explode() -> None:
        raise RuntimeError("disk on fire")

    coordinator = ThreadLifecycleCoordinator(explode)
    coordinator.on_thread_start(0)
    coordinator.on_thread_fini(0)

    assert coordinator.state is TraceState.DONE


def test_concurrent_triggers_finalize_once() -> None:
    finalize = _Counter()
    coordinator = ThreadLifecycleCoordinator(finalize)
    workers = 16
    for thread_id in range(workers):
        coordinator.on_thread_start(thread_id)
    barrier = threading.Barrier(workers + 1)

    def fini(thread_id: int) -> None:
        barrier.wait()
        coordinator.on_thread_fini(thread_id)

    def process_exit() -> None:
        barrier.wait()
        coordinator.on_process_exit()

    threads = [threading.Thread(target=fini, args=(i,)) for i in range(workers)]
    threads.append(threading.Thread(target=process_exit))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert finalize.calls == 1
    assert coordinator.state is TraceState.DONE
    assert coordinator.active_threads == 0
