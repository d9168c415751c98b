"""
Concurrency utilities.

- ``synchronized`` serialises a method on the instance ``_lock`` so bus
  messages, client commands and timer ticks handled on different threads
  still run one at a time.
- ``run_detached`` submits fire-and-forget work (persistence, notifications)
  to an executor; the caller never waits and failures are only logged.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from functools import wraps
from typing import Any, Callable

logger = logging.getLogger(__name__)


def synchronized(func: Callable) -> Callable:
    """Decorator that acquires `self._lock` if present on the instance."""

    @wraps(func)
    def _wrapped(*args, **kwargs):
        self = args[0] if args else None
        lock = getattr(self, "_lock", None)
        if lock is None:
            return func(*args, **kwargs)
        with lock:
            return func(*args, **kwargs)

    return _wrapped


def run_detached(executor: Executor, func: Callable[..., Any], *args: Any, description: str = "") -> Future | None:
    """Submit ``func`` without awaiting it; log the failure if it raises."""
    label = description or getattr(func, "__name__", repr(func))

    def _log_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Detached task '%s' failed: %s", label, exc, exc_info=exc)

    try:
        future = executor.submit(func, *args)
    except RuntimeError as exc:
        # Executor already shut down
        logger.warning("Dropped detached task '%s': %s", label, exc)
        return None
    future.add_done_callback(_log_failure)
    return future
