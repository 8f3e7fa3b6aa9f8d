"""
Barista dashboard service: live queue view plus assignment workflow.

The dashboard shows every barista next to the pending queue and pulls or
completes orders on a barista's behalf. All state transitions belong to
the Queue Service:

    PENDING -> IN_PROGRESS   (take next order / assign-next)
    IN_PROGRESS -> COMPLETED (complete order)
    PENDING | IN_PROGRESS -> CANCELLED (exposed, not driven here)

TWO-STEP MUTATIONS:
    1. Send the mutation and wait for the service's answer
    2. On success, re-poll baristas + pending + in-progress orders

    The cached snapshot is never patched in place and never flipped
    optimistically. A rejected mutation leaves it exactly as it was.

VIEWS:
    Several browser sessions may have the dashboard open. The poller runs
    while at least one of them is open with auto-refresh on; each session
    only ever switches its own view off.

Usage:
    service = BaristaDashboardService(client, refresh_interval_seconds=5.0)
    service.activate(session_key)         # starts the 5s poller

    snapshot = service.get_snapshot()
    if service.can_take_next(barista.id):
        service.take_next_order(barista.id)

    service.deactivate(session_key)       # stops it if nobody else is viewing
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Any, Optional, Set, Tuple, Union

from core.exceptions import CafeQueueError, ServiceError
from core.queue_client import QueueServiceClient
from models.barista import Barista, BaristaStatus
from models.order import Order, OrderStatus
from services.poller import Poller
from services.viewers import ViewerSet
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# View key used when the caller does not track sessions (scripts, tests)
DEFAULT_VIEW = "local"


@dataclass(frozen=True)
class BaristaDashboardSnapshot:
    """
    Point-in-time view of baristas and the queue.

    Built from one refresh; replaced wholesale by the next.
    """

    baristas: Tuple[Barista, ...] = ()
    pending_orders: Tuple[Order, ...] = ()
    """Pending orders in the service's priority order."""

    in_progress_orders: Tuple[Order, ...] = ()
    fetched_at: Optional[datetime] = None
    """None until the first successful refresh."""

    @classmethod
    def create_empty(cls) -> "BaristaDashboardSnapshot":
        return cls()

    @property
    def is_loaded(self) -> bool:
        return self.fetched_at is not None

    def get_barista(self, barista_id: int) -> Optional[Barista]:
        for barista in self.baristas:
            if barista.id == barista_id:
                return barista
        return None

    def current_order_for(self, barista_id: int) -> Optional[Order]:
        """The barista's IN_PROGRESS order, matched on id then name."""
        barista = self.get_barista(barista_id)
        for order in self.in_progress_orders:
            if order.barista_id is not None:
                if order.barista_id == barista_id:
                    return order
            elif barista and order.barista_name == barista.name:
                return order
        return None

    def summary(self) -> Dict[str, Any]:
        """Header numbers for the dashboard."""
        pending = self.pending_orders
        total_wait = sum(order.current_wait_minutes for order in pending)
        return {
            "pendingCount": len(pending),
            "emergencyCount": sum(1 for order in pending if order.emergency_flag),
            "averageWaitMinutes": round(total_wait / max(len(pending), 1)),
            "availableBaristas": sum(1 for barista in self.baristas if barista.is_available),
        }


class BaristaDashboardService:
    """
    Live barista dashboard with assign/complete actions.

    Owns one Poller ("barista") that refreshes the snapshot every
    refresh_interval_seconds while at least one session has the dashboard
    open with auto-refresh on. Manual refresh is always available.

    Attributes:
        is_active: Whether any session has the dashboard open
        is_polling: Whether the refresh thread is running
    """

    def __init__(
        self,
        client: QueueServiceClient,
        refresh_interval_seconds: float = 5.0,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the dashboard service (no view open, not polling).

        Args:
            client: Queue Service client
            refresh_interval_seconds: Seconds between dashboard refreshes
            idle_timeout_seconds: Drop a view not seen for this long
                (None keeps views until deactivated)
            clock: Monotonic time source
        """
        self._client = client
        self._lock = threading.Lock()
        self._snapshot = BaristaDashboardSnapshot.create_empty()
        self._last_error: Optional[str] = None

        self._viewers = ViewerSet("barista", idle_timeout_seconds, clock)
        # Open views that switched auto-refresh off
        self._paused: Set[str] = set()

        self._poller: Poller[BaristaDashboardSnapshot] = Poller(
            "barista",
            fetch=self._load_snapshot,
            apply=self._install_snapshot,
            interval_seconds=refresh_interval_seconds,
            on_error=self._record_error,
            keep_running=self._wants_polling,
        )

        logger.info(f"BaristaDashboardService initialized (refresh interval: {refresh_interval_seconds}s)")

    @property
    def is_active(self) -> bool:
        return len(self._viewers) > 0

    @property
    def is_polling(self) -> bool:
        return self._poller.is_running

    @property
    def last_error(self) -> Optional[str]:
        """Message of the last failed refresh, cleared on success."""
        return self._last_error

    def is_viewing(self, session_key: str) -> bool:
        return session_key in self._viewers

    def auto_refresh_for(self, session_key: str) -> bool:
        """Whether this session's view wants periodic refresh."""
        return session_key not in self._paused

    # =========================================================================
    # VIEW LIFECYCLE
    # =========================================================================

    def activate(self, session_key: str = DEFAULT_VIEW) -> None:
        """A session opened the dashboard: poll unless it paused auto-refresh."""
        self._viewers.add(session_key)
        self._sync_poller()

    def deactivate(self, session_key: str = DEFAULT_VIEW) -> None:
        """A session closed the dashboard: stop polling if it was the last one."""
        self._viewers.discard(session_key)
        self._paused.discard(session_key)
        self._sync_poller()

    def touch(self, session_key: str) -> bool:
        """Note that a session's dashboard is still open (any dashboard request)."""
        return self._viewers.touch(session_key)

    def set_auto_refresh(self, enabled: bool, session_key: str = DEFAULT_VIEW) -> None:
        """Toggle periodic refresh for one session's view."""
        if enabled:
            self._paused.discard(session_key)
        else:
            self._paused.add(session_key)
        self._viewers.touch(session_key)
        self._sync_poller()

    def close(self) -> None:
        """Shutdown: forget every view and stop polling."""
        self._viewers.clear()
        self._paused.clear()
        self._poller.stop()

    def _wants_polling(self) -> bool:
        for key in self._viewers.evict_idle():
            self._paused.discard(key)
        return any(key not in self._paused for key in self._viewers.keys())

    def _sync_poller(self) -> None:
        if self._wants_polling():
            self._poller.start()
        else:
            self._poller.stop()

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def get_snapshot(self) -> BaristaDashboardSnapshot:
        """Current snapshot (never None; empty before the first refresh)."""
        with self._lock:
            return self._snapshot

    def refresh(self) -> BaristaDashboardSnapshot:
        """
        Manual refresh ("Refresh Now").

        Raises:
            ServiceError: If the refresh failed (snapshot left untouched)
        """
        self._poller.refresh_now()
        return self.get_snapshot()

    def can_take_next(self, barista_id: int) -> bool:
        """Whether the take-next action should be enabled for this barista."""
        snapshot = self.get_snapshot()
        return bool(snapshot.pending_orders) and snapshot.current_order_for(barista_id) is None

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def take_next_order(self, barista_id: int) -> Optional[Order]:
        """
        Assign the highest-priority pending order to a barista.

        Preconditions (pending orders exist, barista has nothing in
        progress) are the view's job via can_take_next(); they are not
        re-checked here. A rejection from the service propagates.

        Returns:
            The assigned order if the service echoed it, else None

        Raises:
            ServiceError: If the assignment failed (snapshot untouched)
        """
        logger.info(f"Barista {barista_id}: taking next order")
        order = self._client.assign_next_order(barista_id)
        if order:
            logger.info(f"Barista {barista_id}: assigned {order.order_number}")
        self._refresh_after_mutation("assign-next")
        return order

    def complete_order(self, order_id: int) -> Optional[Order]:
        """
        Mark an order COMPLETED (completion time is set by the service).

        Raises:
            ServiceError: If the completion failed (snapshot untouched)
        """
        logger.info(f"Completing order {order_id}")
        order = self._client.complete_order(order_id)
        self._refresh_after_mutation("complete")
        return order

    def cancel_order(self, order_id: int) -> Optional[Order]:
        """Cancel an order. Exposed for completeness; the dashboard flow never calls it."""
        logger.info(f"Cancelling order {order_id}")
        order = self._client.cancel_order(order_id)
        self._refresh_after_mutation("cancel")
        return order

    def set_barista_status(
        self,
        barista_id: int,
        status: Union[BaristaStatus, str]
    ) -> Optional[Barista]:
        """
        Request a barista status change (AVAILABLE / BUSY / OFFLINE).

        Raises:
            ValueError: If the status is not a known BaristaStatus
            ServiceError: If the service rejected the change
        """
        status = BaristaStatus.parse(status)
        logger.info(f"Barista {barista_id}: status -> {status.value}")
        barista = self._client.update_barista_status(barista_id, status)
        self._refresh_after_mutation("barista-status")
        return barista

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load_snapshot(self) -> BaristaDashboardSnapshot:
        baristas = self._client.get_all_baristas()
        pending = self._client.get_pending_orders()
        in_progress = self._client.get_orders_by_status(OrderStatus.IN_PROGRESS)

        return BaristaDashboardSnapshot(
            baristas=tuple(baristas),
            pending_orders=tuple(pending),
            in_progress_orders=tuple(in_progress),
            fetched_at=datetime.now(timezone.utc),
        )

    def _install_snapshot(self, snapshot: BaristaDashboardSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._last_error = None
        logger.debug(
            f"Dashboard refreshed: {len(snapshot.baristas)} baristas, "
            f"{len(snapshot.pending_orders)} pending, {len(snapshot.in_progress_orders)} in progress"
        )

    def _record_error(self, error: Exception) -> None:
        # User-facing text only; details stay in the log
        self._last_error = error.message if isinstance(error, CafeQueueError) else str(error)

    def _refresh_after_mutation(self, action: str) -> None:
        """
        Re-poll after a successful mutation.

        The mutation already succeeded, so a failed refresh is recorded in
        last_error (the view shows the data as stale) instead of turning
        the action into an error. The next tick retries the refresh.
        """
        try:
            self._poller.refresh_now()
        except ServiceError as e:
            logger.warning(f"Refresh after {action} failed; dashboard is stale: {e.message}")
