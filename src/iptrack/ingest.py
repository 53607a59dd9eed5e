"""Per-instruction sample handling."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from iptrack.store import SENTINEL_ADDRESS, TransitionStore

LOGGER = logging.getLogger(__name__)


class TraceIngestor:
    """Turn a stream of program-counter samples into transitions.

    The last-seen address is tracked per thread so concurrent traces never
    bleed into each other; the sample counter is shared by all threads.
    """

    def __init__(self, store: TransitionStore, *, max_samples: Optional[int] = None) -> None:
        self.store = store
        self.max_samples = max_samples
        self._local = threading.local()
        self._count_lock = threading.Lock()
        self._count = 0
        self._saturated = False

    @property
    def sample_count(self) -> int:
        return self._count

    @property
    def saturated(self) -> bool:
        return self._saturated

    @property
    def previous(self) -> int:
        """Last address seen by the calling thread."""

        return getattr(self._local, "previous", SENTINEL_ADDRESS)

    def on_sample(self, address: int) -> None:
        with self._count_lock:
            self._count += 1
            within_capacity = self.max_samples is None or self._count < self.max_samples
            newly_saturated = not within_capacity and not self._saturated
            if newly_saturated:
                self._saturated = True

        if newly_saturated:
            LOGGER.warning("Sample ceiling of %s reached, no further transitions are recorded", self.max_samples)
        if not within_capacity:
            return

        previous = self.previous
        if previous != SENTINEL_ADDRESS:
            self.store.record(previous, address)
        self._local.previous = address


__all__ = ["TraceIngestor"]
