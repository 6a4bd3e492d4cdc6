"""Background recorder - fire-and-forget suggestion/analytics writes.

Work runs on a small thread pool off the request path. The number of pending
jobs is bounded; when full, new jobs are dropped and logged. Failures are
wrapped in BackgroundRecordingFailure, logged and counted, never raised to
the caller and never retried.
"""

import contextvars
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for
from typing import Any

from pos_search.core.exceptions import BackgroundRecordingFailure
from pos_search.core.logging import get_logger

logger = get_logger("pos_search.services.recording")


class BackgroundRecorder:
    """Bounded, detached executor for best-effort writes."""

    def __init__(self, *, max_workers: int = 2, max_pending: int = 1000) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pos-search-recorder")
        self._slots = threading.BoundedSemaphore(max_pending)
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.failed = 0
        self.dropped = 0

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future | None:
        """Schedule fn(*args, **kwargs). Returns None when the job was dropped."""
        if self._closed:
            logger.warning("Recorder closed, dropping %s", name)
            self._count("dropped")
            return None
        if not self._slots.acquire(blocking=False):
            logger.warning("Recording queue full, dropping %s", name)
            self._count("dropped")
            return None
        ctx = contextvars.copy_context()  # keep the request's trace_id in worker logs
        try:
            future = self._executor.submit(ctx.run, self._run, name, fn, args, kwargs)
        except RuntimeError:
            self._slots.release()
            logger.warning("Recorder shut down, dropping %s", name)
            self._count("dropped")
            return None
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._done)
        return future

    def _run(self, name: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            self._count("failed")
            failure = BackgroundRecordingFailure(f"Background {name} failed", details={"job": name})
            logger.error("%s: %s", failure.message, exc, exc_info=exc, extra={"job": name})
            return None

    def _done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    def _count(self, attr: str) -> None:
        with self._lock:
            setattr(self, attr, getattr(self, attr) + 1)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for jobs queued so far. True when all finished within timeout."""
        with self._lock:
            futures = list(self._pending)
        if not futures:
            return True
        _, not_done = wait_for(futures, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)
