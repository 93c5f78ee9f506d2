"""
Session Sweeper - periodic removal of stale sessions

Runs SessionStore.sweep(max_age) on a fixed interval in a daemon thread,
independent of request handling. stop() is the shutdown hook: it wakes
the thread immediately and joins it.
"""

import logging
import threading
from datetime import timedelta
from typing import Optional

from symptom_triage.core.session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Background cleanup task for a SessionStore"""

    def __init__(self, store: SessionStore, max_age: timedelta, interval: timedelta):
        """
        Args:
            store: Store to sweep
            max_age: Sessions strictly older than this are removed
            interval: Time between sweeps

        Raises:
            ValueError: If interval is not positive
        """
        if interval.total_seconds() <= 0:
            raise ValueError(f"Sweep interval must be positive, got {interval}")

        self.store = store
        self.max_age = max_age
        self.interval = interval
        self.sweep_count = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread. Calling start() on a running sweeper is a no-op."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="session-sweeper",
            daemon=True
        )
        self._thread.start()
        logger.info(f"Session sweeper started (max_age={self.max_age}, interval={self.interval})")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the thread to exit and wait for it"""
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout)

        if self._thread.is_alive():
            logger.warning("Session sweeper did not stop within timeout")
        else:
            logger.info(f"Session sweeper stopped after {self.sweep_count} sweep(s)")
        self._thread = None

    def run_once(self) -> int:
        """Sweep immediately on the calling thread. Returns sessions removed."""
        removed = self.store.sweep(self.max_age)
        self.sweep_count += 1
        return removed

    def _run(self) -> None:
        # wait() returns True as soon as stop() sets the event
        while not self._stop_event.wait(self.interval.total_seconds()):
            try:
                self.run_once()
            except Exception:
                logger.exception("Error in periodic session sweep")

    def __enter__(self) -> "SessionSweeper":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
