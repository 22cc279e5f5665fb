"""Graceful shutdown coordinator.

Tracks in-flight updates and lets them complete (up to a timeout)
before the listeners are closed.

Usage::

    from acmetxt.app.shutdown import ShutdownCoordinator

    coordinator = ShutdownCoordinator(graceful_timeout=10)
    coordinator.register_signals()

    with coordinator.track("update"):
        gateway.update(ip, subdomain, txt)

    coordinator.wait()      # blocks until SIGINT / SIGTERM
    coordinator.initiate()  # waits for tracked ops to finish
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

log = logging.getLogger(__name__)


class ShutdownCoordinator:
    """Coordinates graceful shutdown by tracking in-flight operations.

    Parameters
    ----------
    graceful_timeout:
        Maximum seconds to wait for in-flight operations during shutdown.

    """

    def __init__(self, graceful_timeout: float = 10) -> None:
        self._graceful_timeout = graceful_timeout
        self._requested = threading.Event()
        self._shutdown_flag = threading.Event()
        self._in_flight = 0
        self._lock = threading.Lock()
        self._done = threading.Condition(self._lock)

    @property
    def is_shutting_down(self) -> bool:
        """True once :meth:`initiate` has been called."""
        return self._shutdown_flag.is_set()

    @property
    def in_flight_count(self) -> int:
        """Number of currently tracked operations."""
        with self._lock:
            return self._in_flight

    @contextmanager
    def track(self, name: str) -> Generator[None, None, None]:
        """Context manager to track an in-flight operation.

        Operations started after shutdown began still run; a warning is
        logged.
        """
        if self._shutdown_flag.is_set():
            log.warning("Operation '%s' starting during shutdown", name)

        with self._lock:
            self._in_flight += 1

        try:
            yield
        finally:
            with self._done:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._done.notify_all()

    def request_shutdown(self) -> None:
        """Wake up :meth:`wait` without draining."""
        self._requested.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until shutdown is requested; False on timeout."""
        return self._requested.wait(timeout)

    def initiate(self) -> None:
        """Begin graceful shutdown.

        Sets the shutdown flag and waits up to ``graceful_timeout``
        seconds for in-flight operations to complete.
        """
        if self._shutdown_flag.is_set():
            return

        self._shutdown_flag.set()
        self._requested.set()
        log.info("Graceful shutdown initiated")

        with self._done:
            deadline = time.monotonic() + self._graceful_timeout
            while self._in_flight > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    log.warning(
                        "Shutdown timeout expired with %d operations in flight",
                        self._in_flight,
                    )
                    break
                self._done.wait(timeout=remaining)

            if self._in_flight == 0:
                log.info("All in-flight operations completed")

    def register_signals(self) -> None:
        """Register SIGTERM and SIGINT handlers that request shutdown.

        Must be called from the main thread.
        """
        try:
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)
        except (ValueError, OSError):
            # Not in main thread or signals not supported
            log.debug("Could not register signal handlers (not main thread)")

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        log.info("Received %s, initiating graceful shutdown", sig_name)
        self._requested.set()
