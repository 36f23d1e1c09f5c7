"""
Background Reporter
Periodically logs the store's operation count and size until stopped.
"""

import logging
import threading
from typing import Optional

from kv_store import KeyValueStore, StoreStats

logger = logging.getLogger(__name__)

# Seconds between two reports
DEFAULT_INTERVAL = 5.0


class Reporter:
    """
    Repeating timer task that reports aggregate store state.

    The worker thread waits on a one-shot stop event with the report
    interval as timeout. A timeout is a tick, a set event is a stop, so a
    single wakeup never does both.

    States: running (after start) and stopped (terminal). There is no
    restart.
    """

    def __init__(self, store: KeyValueStore, interval: float = DEFAULT_INTERVAL,
                 log: Optional[logging.Logger] = None):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.store = store
        self.interval = interval
        self.log = log or logger
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        """True once stop() was called. Read by callers and tests, not the worker."""
        return self._stop_event.is_set()

    def start(self) -> None:
        """Launch the worker thread. A reporter can only be started once."""
        if self._thread is not None or self._stop_event.is_set():
            raise RuntimeError("Reporter cannot be restarted")
        self._thread = threading.Thread(target=self._run, name="reporter", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Signal the worker to stop and wait for it to exit.

        Safe to call more than once and before start().
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def tick(self) -> StoreStats:
        """Take one snapshot of the store and log it."""
        stats = self.store.stats()
        self.log.info("[Worker Log] Requests: %d | Database Size: %d",
                      stats.total_requests, stats.size)
        return stats

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.tick()
        self.log.info("Worker Stopped")
