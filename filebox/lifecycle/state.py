"""Server lifecycle state: draining flag and in-flight worker tracking."""

import logging
import threading
import time

from filebox.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.lifecycle"), {}
)


class ServerLifecycle:
    """Tracks connection workers and coordinates graceful shutdown."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._draining_event = threading.Event()
        self._workers: set[threading.Thread] = set()

    def should_stop(self) -> bool:
        """Return True once the accept loop should stop taking connections."""
        return self._draining_event.is_set()

    def is_draining(self) -> bool:
        """Return True while in-flight requests finish before shutdown."""
        return self._draining_event.is_set()

    def register_worker(self, thread: threading.Thread) -> None:
        """Track a connection worker thread."""
        with self._lock:
            self._workers.add(thread)

    def cleanup_worker(self, thread: threading.Thread) -> None:
        """Stop tracking a finished connection worker thread."""
        with self._lock:
            self._workers.discard(thread)

    def active_worker_count(self) -> int:
        """Return the number of tracked worker threads."""
        with self._lock:
            return len(self._workers)

    def begin_draining(self) -> None:
        """Refuse new work and let in-flight requests complete."""
        if self._draining_event.is_set():
            return
        self._draining_event.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown",
            extra={"event": "draining_started", "entries": self.active_worker_count()},
        )

    def wait_for_workers(self, timeout: float) -> bool:
        """Join live workers until they finish or ``timeout`` seconds pass."""
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                pending = [worker for worker in self._workers if worker.is_alive()]
                self._workers = set(pending)
            if not pending:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={"event": "shutdown_timeout", "entries": len(pending)},
                )
                return False
            pending[0].join(timeout=min(0.1, remaining))
