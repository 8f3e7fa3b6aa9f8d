"""
Load-test (simulation) service.

Drives the Queue Service's synthetic load generator and keeps a live,
aggregated view of its metrics for the simulation dashboard.

Lifecycle:
    generate()  -> service creates test orders, metrics fetched once,
                   test flagged running, 2s poller started if a view is open
    (poll)      -> one TestMetrics snapshot per tick, reduced by
                   modules.metrics_aggregator into a SimulationDashboard
    clear(confirmed=True)
                -> service discards all test data, poller stopped,
                   local dashboard discarded

The poller only runs while a test is flagged running AND at least one
session has the simulation view open. Closing the last view tears it down
and any in-flight metrics call is discarded when it resolves.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

from core.exceptions import CafeQueueError, ConfirmationRequiredError, ServiceError
from core.queue_client import QueueServiceClient
from models.metrics import TestMetrics, TimeSeriesPoint
from modules.metrics_aggregator import SimulationDashboard, build_dashboard
from services.poller import Poller
from services.viewers import ViewerSet
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

CLEAR_ACTION = "clear test data"

# View key used when the caller does not track sessions (scripts, tests)
DEFAULT_VIEW = "local"


class SimulationService:
    """
    Simulation dashboard backend.

    Holds at most one SimulationDashboard, replaced wholesale on every
    poll. There is no aggregation across polls.

    Attributes:
        is_running: A load test has been generated and not cleared
        is_active: At least one session has the simulation view open
        is_polling: The metrics poller thread is alive
    """

    def __init__(
        self,
        client: QueueServiceClient,
        refresh_interval_seconds: float = 2.0,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._client = client
        self._lock = threading.Lock()
        self._dashboard: Optional[SimulationDashboard] = None
        self._last_error: Optional[str] = None

        self._is_running = False
        self._viewers = ViewerSet("simulation", idle_timeout_seconds, clock)

        self._poller: Poller[TestMetrics] = Poller(
            "simulation",
            fetch=self._client.get_test_metrics,
            apply=self._install_metrics,
            interval_seconds=refresh_interval_seconds,
            on_error=self._record_error,
            keep_running=self._wants_polling,
        )

        logger.info(f"SimulationService initialized (refresh interval: {refresh_interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def is_active(self) -> bool:
        return len(self._viewers) > 0

    @property
    def is_polling(self) -> bool:
        return self._poller.is_running

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def get_dashboard(self) -> Optional[SimulationDashboard]:
        """Latest aggregated dashboard, or None before any metrics / after clear."""
        with self._lock:
            return self._dashboard

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    def generate(self) -> str:
        """
        Ask the Queue Service to generate a synthetic load.

        On success the metrics are fetched once right away and polling
        starts if the view is open. On failure nothing local changes.

        Returns:
            The service's confirmation message

        Raises:
            ServiceError: If generation failed
        """
        message = self._client.generate_test_orders()

        try:
            self._poller.refresh_now()
        except ServiceError as e:
            # Generation itself succeeded; the poller keeps trying
            logger.warning(f"Initial metrics fetch after generate failed: {e.message}")

        self._is_running = True
        if self._wants_polling():
            self._poller.start(immediate=False)

        logger.info(f"Load test running: {message}")
        return message

    def clear(self, confirmed: bool = False) -> str:
        """
        Discard all synthetic test data on the Queue Service.

        Destructive and irreversible, so it refuses to send anything
        unless confirmed is True.

        Returns:
            The service's confirmation message

        Raises:
            ConfirmationRequiredError: If not confirmed (no request sent)
            ServiceError: If the clear failed (local state untouched)
        """
        if not confirmed:
            raise ConfirmationRequiredError(CLEAR_ACTION)

        message = self._client.clear_test_data()

        self._is_running = False
        self._poller.stop()
        with self._lock:
            self._dashboard = None
            self._last_error = None

        logger.info(f"Load test cleared: {message}")
        return message

    # =========================================================================
    # VIEW LIFECYCLE / MANUAL REFRESH
    # =========================================================================

    def activate(self, session_key: str = DEFAULT_VIEW) -> None:
        """Simulation view opened by a session: poll if a test is running."""
        self._viewers.add(session_key)
        self._sync_poller()

    def deactivate(self, session_key: str = DEFAULT_VIEW) -> None:
        """
        Simulation view closed by a session.

        Polling stops only when the last open view goes away.
        """
        self._viewers.discard(session_key)
        self._sync_poller()

    def touch(self, session_key: str) -> bool:
        """Record activity from an open view. False if the session never activated."""
        return self._viewers.touch(session_key)

    def is_viewing(self, session_key: str) -> bool:
        return session_key in self._viewers

    def close(self) -> None:
        """Shutdown: forget every view and stop polling."""
        self._viewers.clear()
        self._poller.stop()

    def refresh(self) -> Optional[SimulationDashboard]:
        """
        Manual metrics refresh.

        Raises:
            ServiceError: If the metrics fetch failed
        """
        self._poller.refresh_now()
        return self.get_dashboard()

    def get_time_series(self) -> List[TimeSeriesPoint]:
        """Per-minute order counts for the running test."""
        return self._client.get_time_series()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _install_metrics(self, metrics: TestMetrics) -> None:
        dashboard = build_dashboard(metrics)
        with self._lock:
            self._dashboard = dashboard
            self._last_error = None
        logger.debug(
            f"Metrics: {metrics.completed_orders}/{metrics.total_orders} completed "
            f"({dashboard.progress_percent:.0f}%)"
        )

    def _record_error(self, error: Exception) -> None:
        # User-facing text only; details stay in the log
        self._last_error = error.message if isinstance(error, CafeQueueError) else str(error)

    def _wants_polling(self) -> bool:
        """A test is running and at least one view is still open."""
        self._viewers.evict_idle()
        return self._is_running and len(self._viewers) > 0

    def _sync_poller(self) -> None:
        if self._wants_polling():
            self._poller.start()
        else:
            self._poller.stop()
