"""
Periodic refresh driver for live views.

Every view that shows live Queue Service data owns exactly one Poller:

    Customer tracking     every 3s (only after an order has been placed)
    Barista dashboard     every 5s (while the dashboard is active)
    Simulation monitor    every 2s (only while a load test is running)

TICK MODEL:
    - One tick = one fetch() followed by apply() of its result
    - The next tick is not scheduled until the previous result (success or
      failure) has been handled, so a view never has two polls in flight
    - A slow service simply stretches the interval (natural backpressure)

CANCELLATION:
    - stop() bumps the poller's generation before signalling the thread
    - apply() only runs if the generation captured before the fetch still
      matches, so a call that resolves after stop() is discarded instead of
      being written into a torn-down view
    - keep_running() is asked before every timer tick; a view that went
      away without saying so (closed browser tab) stops its own poller

Usage:
    poller = Poller("barista", fetch=load_snapshot, apply=install_snapshot,
                    interval_seconds=5.0)

    with poller.running():
        ...                       # view is active

    poller.refresh_now()          # manual refresh, never a second timer
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

from logging_config import get_logger, poller_thread_name, set_thread_name


# Module logger
logger = get_logger(__name__)

T = TypeVar("T")


class Poller(Generic[T]):
    """
    Background refresh loop with deterministic teardown.

    The poller owns its thread. Callers only see start()/stop() (or the
    running() context manager) and refresh_now().

    Attributes:
        name: View name, used for the thread name and log lines
        interval_seconds: Time between the end of one tick and the next
        is_running: Whether the background thread is active
        generation: Incremented on every stop(); stale ticks are discarded
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], T],
        apply: Callable[[T], None],
        interval_seconds: float,
        on_error: Optional[Callable[[Exception], None]] = None,
        keep_running: Optional[Callable[[], bool]] = None,
        join_timeout: float = 5.0
    ):
        """
        Initialize a poller (does not start it).

        Args:
            name: View name (e.g. "barista", "simulation")
            fetch: Performs one Queue Service read and returns a snapshot
            apply: Installs a snapshot into the owning view's state
            interval_seconds: Seconds between ticks
            on_error: Optional callback for fetch failures
            keep_running: Optional check run before every timer tick; when it
                returns False the poller stops itself (its view is gone)
            join_timeout: Seconds stop() waits for the thread to exit

        Raises:
            ValueError: If interval_seconds is not positive
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self._name = name
        self._fetch = fetch
        self._apply = apply
        self._interval = interval_seconds
        self._on_error = on_error
        self._keep_running = keep_running
        self._join_timeout = join_timeout

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        # Serializes ticks from the timer thread and manual refreshes
        self._tick_lock = threading.Lock()
        # Guards generation and the check-then-apply step
        self._state_lock = threading.RLock()
        self._generation = 0

        self._consecutive_failures = 0
        self._last_success_at: Optional[float] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        """Whether the background refresh thread is active."""
        return self._is_running

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def last_success_at(self) -> Optional[float]:
        """time.time() of the last applied tick, or None."""
        return self._last_success_at

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, immediate: bool = True) -> None:
        """
        Start the background refresh thread.

        The thread ticks immediately (or after one interval when
        immediate=False), then every interval_seconds until stop() is
        called. Safe to call while running - never creates a second timer.

        Args:
            immediate: Tick right away instead of waiting one interval
        """
        with self._state_lock:
            if self._is_running:
                logger.debug(f"Poller '{self._name}' already running")
                return

            # Fresh event per run: a previous thread still finishing a stale
            # fetch keeps its own (already set) event and exits
            self._stop_event = threading.Event()
            generation = self._generation

            self._thread = threading.Thread(
                target=self._run_loop,
                args=(generation, self._stop_event, immediate),
                name=poller_thread_name(self._name),
                daemon=True  # Thread will exit when main process exits
            )
            self._is_running = True
            self._thread.start()

        logger.info(f"Poller '{self._name}' started (interval: {self._interval}s)")

    def stop(self, wait: bool = True) -> None:
        """
        Stop the background refresh thread.

        Results of any fetch still in flight are discarded. Safe to call
        multiple times, and safe to call from inside apply().

        Args:
            wait: Join the thread (bounded by join_timeout)
        """
        with self._state_lock:
            if not self._is_running:
                return

            # Invalidate in-flight ticks before waking the thread
            self._generation += 1
            self._stop_event.set()
            self._is_running = False
            thread = self._thread
            self._thread = None

        if wait and thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout)
            if thread.is_alive():
                logger.warning(
                    f"Poller '{self._name}' thread still busy after {self._join_timeout}s; "
                    "its result will be discarded"
                )

        logger.info(f"Poller '{self._name}' stopped")

    @contextmanager
    def running(self) -> Iterator["Poller[T]"]:
        """Run the poller for the duration of a with-block."""
        self.start()
        try:
            yield self
        finally:
            self.stop()

    def refresh_now(self) -> bool:
        """
        Run one tick in the calling thread.

        Serialized with the timer's ticks, so it never overlaps a scheduled
        poll. Works whether or not the timer is running.

        Returns:
            True if a snapshot was applied, False if it was discarded

        Raises:
            Exception: Whatever fetch() raised (typically ServiceError)
        """
        return self._tick(self._generation, raise_errors=True)

    # =========================================================================
    # LOOP
    # =========================================================================

    def _run_loop(self, generation: int, stop_event: threading.Event, immediate: bool) -> None:
        set_thread_name(poller_thread_name(self._name))
        logger.debug(f"Poller '{self._name}' loop starting")

        if immediate and self._owner_alive(generation):
            self._tick(generation)

        while not stop_event.is_set():
            if stop_event.wait(timeout=self._interval):
                break
            if not self._owner_alive(generation):
                break
            self._tick(generation)

        logger.debug(f"Poller '{self._name}' loop exiting")

    def _owner_alive(self, generation: int) -> bool:
        """Run keep_running(); stop this run if the owning view is gone."""
        if self._keep_running is None or self._keep_running():
            return True

        with self._state_lock:
            # Only stop the run this thread belongs to, never a newer one
            if generation == self._generation:
                logger.info(f"Poller '{self._name}' has no live view, stopping")
                self.stop(wait=False)
        return False

    def _tick(self, generation: int, raise_errors: bool = False) -> bool:
        """
        Perform a single fetch-then-apply.

        Returns:
            True if the snapshot was applied
        """
        with self._tick_lock:
            if generation != self._generation:
                return False

            try:
                snapshot = self._fetch()
            except Exception as e:
                self._record_failure(e)
                if raise_errors:
                    raise
                return False

            with self._state_lock:
                if generation != self._generation:
                    logger.debug(f"Poller '{self._name}' discarded a result that resolved after stop")
                    return False
                self._apply(snapshot)

            if self._consecutive_failures > 0:
                logger.info(
                    f"Poller '{self._name}' recovered after {self._consecutive_failures} failures"
                )
            self._consecutive_failures = 0
            self._last_success_at = time.time()
            return True

    def _record_failure(self, error: Exception) -> None:
        self._consecutive_failures += 1

        # Escalate, then throttle, so a dead service doesn't flood the log
        if self._consecutive_failures == 1:
            logger.warning(f"Poller '{self._name}' refresh failed: {error}")
        elif self._consecutive_failures <= 3:
            logger.error(
                f"Poller '{self._name}' refresh failed ({self._consecutive_failures} consecutive): {error}"
            )
        elif self._consecutive_failures % 5 == 0:
            logger.error(
                f"Poller '{self._name}' still failing ({self._consecutive_failures} consecutive): {error}"
            )

        if self._on_error:
            try:
                self._on_error(error)
            except Exception as callback_error:
                logger.error(f"Poller '{self._name}' error callback failed: {callback_error}")
