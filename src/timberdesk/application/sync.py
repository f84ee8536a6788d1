from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable

log = logging.getLogger("timberdesk.sync")


class SyncWorker:
    """Runs persistence calls in the background, one at a time, in submission order."""

    def __init__(self) -> None:
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="timberdesk-sync")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        future = self._pool.submit(fn, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._finished)
        return future

    def _finished(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        exc = future.exception()
        if exc is not None:
            log.error("sync_task_failed error=%s", exc, exc_info=exc)
            return
        outcome = future.result()
        error = getattr(outcome, "error", None)
        if error:
            log.warning("sync_task_degraded source=%s error=%s", getattr(outcome, "source", None), error)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for everything submitted so far. Returns False on timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        self._pool.shutdown(wait=True)
