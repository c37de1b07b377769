"""Periodic background refresh with clean cancellation."""

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Refresher(Generic[T]):
    """Calls ``fetch`` every ``interval`` seconds on a background thread.

    Fetches never overlap: there is a single worker thread, and
    ``refresh_now()`` is skipped while a fetch is in flight. ``on_result``
    only ever receives a complete result, so whatever the caller shows keeps
    showing until new data is fully available. Failures are logged and
    passed to ``on_error``; the next attempt is the next scheduled one.

    Example:
        with Refresher("statuses", client.fetch_endpoint_statuses, view.apply, 300):
            ...
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], T],
        on_result: Callable[[T], None],
        interval: float,
        on_error: Callable[[Exception], None] | None = None,
        run_immediately: bool = True,
    ) -> None:
        """Initialize the refresher.

        Args:
            name: Used in the thread name and log messages.
            fetch: Produces fresh data; may raise.
            on_result: Receives each successfully fetched result.
            interval: Seconds between refreshes.
            on_error: Receives exceptions raised by ``fetch``.
            run_immediately: Fetch once as soon as the thread starts.
        """
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive (got {interval})")
        self.name = name
        self._fetch = fetch
        self._on_result = on_result
        self._on_error = on_error
        self._interval = interval
        self._run_immediately = run_immediately
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._busy = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        return self._interval

    def start(self) -> None:
        """Start the refresh thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Refresher %s already running", self.name)
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=f"refresh-{self.name}", daemon=True)
        self._thread.start()
        logger.info("Refresher %s started (interval: %ss)", self.name, self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel pending refreshes and wait for the thread to exit."""
        self._stop_event.set()
        self._wake_event.set()
        if self._thread is None:
            return

        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Refresher %s did not stop within timeout", self.name)
        else:
            logger.info("Refresher %s stopped", self.name)
        self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "Refresher[T]":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def set_interval(self, interval: float) -> None:
        """Change the interval; the current wait restarts with the new value."""
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive (got {interval})")
        self._interval = interval
        self._wake_event.set()

    def refresh_now(self) -> bool:
        """Run one refresh on the calling thread.

        Returns:
            False if a refresh was already in progress and this one was skipped.
        """
        return self._refresh()

    def _refresh(self) -> bool:
        if not self._busy.acquire(blocking=False):
            logger.debug("Refresher %s busy, skipping", self.name)
            return False
        try:
            try:
                result = self._fetch()
            except Exception as e:
                logger.warning("Refresher %s fetch failed: %s", self.name, e)
                if self._on_error is not None:
                    self._on_error(e)
                return True
            if not self._stop_event.is_set():
                self._on_result(result)
            return True
        finally:
            self._busy.release()

    def _run(self) -> None:
        """Refresh loop - runs in background thread."""
        if self._run_immediately:
            self._refresh()
        while not self._stop_event.is_set():
            self._wake_event.clear()
            woke = self._wake_event.wait(self._interval)
            if self._stop_event.is_set():
                break
            if woke:
                # Interval changed; start a fresh wait.
                continue
            self._refresh()
        logger.debug("Refresher %s loop exited", self.name)
