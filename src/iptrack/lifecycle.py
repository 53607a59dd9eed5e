"""Thread bookkeeping and the one-shot finalize trigger."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable

LOGGER = logging.getLogger(__name__)


class TraceState(enum.Enum):
    IDLE = "idle"
    TRACING = "tracing"
    DRAINING = "draining"
    DONE = "done"


class ThreadLifecycleCoordinator:
    """Count live traced threads and run ``finalize`` exactly once.

    Finalize fires when the last thread ends or on process exit, whichever
    comes first. Every later trigger is a no-op.
    """

    def __init__(self, finalize: Callable[[], None]) -> None:
        self._finalize = finalize
        self._lock = threading.Lock()
        self._active = 0
        self._state = TraceState.IDLE

    @property
    def state(self) -> TraceState:
        return self._state

    @property
    def active_threads(self) -> int:
        return self._active

    def on_thread_start(self, thread_id: int) -> None:
        with self._lock:
            self._active += 1
            if self._state is TraceState.IDLE:
                self._state = TraceState.TRACING
            active = self._active
        LOGGER.debug("ThreadStart id:%s -- %s", thread_id, active)

    def on_thread_fini(self, thread_id: int, exit_code: int = 0) -> None:
        with self._lock:
            if self._active == 0:
                LOGGER.warning("ThreadFini id:%s without a matching ThreadStart", thread_id)
                return
            self._active -= 1
            active = self._active
            claimed = active == 0 and self._claim()
        LOGGER.debug("ThreadFini id:%s -- %s (code %s)", thread_id, active, exit_code)
        if claimed:
            self._run_finalize()

    def on_process_exit(self, exit_code: int = 0) -> None:
        with self._lock:
            claimed = self._claim()
        LOGGER.debug("Process exit (code %s), %s thread(s) still live", exit_code, self._active)
        if claimed:
            self._run_finalize()

    def _claim(self) -> bool:
        # Caller holds the lock.
        if self._state in (TraceState.DRAINING, TraceState.DONE):
            return False
        self._state = TraceState.DRAINING
        return True

    def _run_finalize(self) -> None:
        LOGGER.info("Fini")
        try:
            self._finalize()
        except Exception:
            LOGGER.exception("Finalize failed; trace output is incomplete")
        finally:
            with self._lock:
                self._state = TraceState.DONE


__all__ = ["ThreadLifecycleCoordinator", "TraceState"]
