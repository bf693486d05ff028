"""Write-Through Queue - Ordered, fire-and-forget persistence.

In-memory state is updated synchronously by the session; the durable copy is
written here on a single background worker. One worker runs jobs in
submission order, so a later write for a key can never be overtaken by an
earlier one.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait

from ..core.errors import PersistenceError
from .store import KeyValueStore


logger = logging.getLogger(__name__)


class WriteThroughQueue:
    """Serializes store writes off the caller's thread."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="write-through")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._failures = 0
        self._closed = False

    @property
    def failures(self) -> int:
        """Number of writes that failed since the queue was created."""
        return self._failures

    def set(self, key: str, value: str) -> Future:
        """Queue a write. The future resolves to True on success."""
        return self._submit(self._do_set, key, value)

    def remove(self, key: str) -> Future:
        """Queue a delete. The future resolves to True on success."""
        return self._submit(self._do_remove, key)

    def _submit(self, fn, *args) -> Future:
        with self._lock:
            if self._closed:
                logger.warning("Write queue closed; dropping write for %s", args[0])
                self._failures += 1
                future: Future = Future()
                future.set_result(False)
                return future
            future = self._executor.submit(fn, *args)
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _do_set(self, key: str, value: str) -> bool:
        return self._report(key, "save", lambda: self.store.set(key, value))

    def _do_remove(self, key: str) -> bool:
        return self._report(key, "remove", lambda: self.store.remove(key))

    def _report(self, key: str, verb: str, op) -> bool:
        try:
            ok = op()
        except PersistenceError as e:
            logger.error("Failed to %s %s: %s", verb, key, str(e))
            ok = False
        except Exception:
            logger.exception("Unexpected store error while trying to %s %s", verb, key)
            ok = False
        if not ok:
            with self._lock:
                self._failures += 1
            logger.warning("Persistence failed for %s; in-memory value kept", key)
        return ok

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for every queued write.

        Returns:
            True if all writes finished within the timeout
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Finish queued writes and stop the worker.

        Writes queued after close are dropped and counted as failures.
        """
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)
