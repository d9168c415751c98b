"""
Interval worker for the bridge's timer-driven jobs.

A single daemon thread calls one callable every ``interval_seconds``: the
periodic pump decision and the pending-command sweep both run through the
bridge's ``tick``. The loop waits on an Event so ``stop`` returns promptly
instead of sleeping out the interval.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class IntervalWorker:
    def __init__(self, func: Callable[[], object], interval_seconds: float, name: str = "IntervalWorker") -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.func = func
        self.interval_seconds = interval_seconds
        self.name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the worker background thread."""
        if self.is_running():
            logger.warning("%s already running", self.name)
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name=self.name)
        self._thread.start()
        logger.info("%s started (every %.1fs)", self.name, self.interval_seconds)

    def stop(self, wait: bool = True, timeout: float = 5.0) -> None:
        """
        Stop the worker.

        Args:
            wait: Wait for the worker thread to finish
            timeout: Maximum wait time in seconds
        """
        if self._thread is None:
            return

        self._stop_event.set()
        if wait and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("%s stopped", self.name)

    def shutdown(self, wait: bool = True, timeout: float = 5.0) -> None:
        """Alias for stop(); matches other services' shutdown() convention."""
        self.stop(wait=wait, timeout=timeout)

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> None:
        try:
            self.func()
        except Exception as e:
            logger.error("Error in %s job: %s", self.name, e, exc_info=True)

    def _run_loop(self) -> None:
        logger.debug("%s loop started", self.name)
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
        logger.debug("%s loop ended", self.name)
