"""Facade wiring ingestion, thread lifecycle and serialization together."""

from __future__ import annotations

import logging

from iptrack.config import TrackerConfig
from iptrack.ingest import TraceIngestor
from iptrack.lifecycle import ThreadLifecycleCoordinator, TraceState
from iptrack.serializer import GraphSerializer
from iptrack.store import TransitionStore

LOGGER = logging.getLogger(__name__)


class ControlFlowTracker:
    """Callbacks an instrumentation engine drives during a traced run.

    The engine is expected to call :meth:`on_instruction_sample` only for
    instructions of the image under trace.
    """

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config or TrackerConfig()
        self.store = TransitionStore()
        self.ingestor = TraceIngestor(self.store, max_samples=self.config.max_samples)
        self.serializer = GraphSerializer(self.config.output_path)
        self.coordinator = ThreadLifecycleCoordinator(self._finalize)

    @property
    def state(self) -> TraceState:
        return self.coordinator.state

    def on_instruction_sample(self, address: int) -> None:
        self.ingestor.on_sample(address)

    def on_thread_start(self, thread_id: int) -> None:
        self.coordinator.on_thread_start(thread_id)

    def on_thread_fini(self, thread_id: int, exit_code: int = 0) -> None:
        self.coordinator.on_thread_fini(thread_id, exit_code)

    def on_process_exit(self, exit_code: int = 0) -> None:
        self.coordinator.on_process_exit(exit_code)

    def _finalize(self) -> None:
        transitions = self.store.drain()
        LOGGER.debug(
            "Draining %s source addresses after %s samples",
            len(transitions),
            self.ingestor.sample_count,
        )
        self.serializer.serialize(transitions)


__all__ = ["ControlFlowTracker"]
