"""
Customer ordering and queue-position tracking.

One CustomerSession per customer (browser session). It owns the session's
"current order" and a tracking Poller that exists only after an order has
been placed:

    place_order()  -> order created, tracking poller started (3s)
    (poll)         -> pending snapshot replaced, position re-derived
    new_order()    -> tracking stopped, current order forgotten

Sessions are never shared. CustomerSessionRegistry maps session keys to
sessions for the web layer and closes them on removal or shutdown.

A session with no request for idle_timeout_seconds is idle: its tracking
poller stops itself on the next tick, and the registry closes and drops it
the next time it is consulted.
"""

from __future__ import annotations

import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from core.exceptions import OrderValidationError
from core.queue_client import QueueServiceClient
from models.menu import DrinkMenuItem
from models.order import Order
from models.order_request import OrderRequest
from modules.wait_estimator import QueuePosition, WaitEstimator
from services.poller import Poller
from logging_config import get_logger, get_session_logger


# Module logger
logger = get_logger(__name__)


class CustomerSession:
    """
    A single customer's ordering session.

    Attributes:
        session_key: Opaque key identifying the session
        current_order: Latest known copy of the placed order, or None
        is_tracking: Whether the position poller is running
        is_idle: No request for longer than idle_timeout_seconds
    """

    def __init__(
        self,
        client: QueueServiceClient,
        estimator: WaitEstimator,
        refresh_interval_seconds: float = 3.0,
        session_key: Optional[str] = None,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._client = client
        self._estimator = estimator
        self._session_key = session_key or uuid.uuid4().hex
        self._logger = get_session_logger(self._session_key)

        self._idle_timeout = idle_timeout_seconds
        self._clock = clock
        self._last_seen = clock()

        self._lock = threading.Lock()
        self._menu: Optional[List[DrinkMenuItem]] = None
        self._current_order: Optional[Order] = None
        # None until the first tracking poll lands
        self._pending: Optional[Tuple[Order, ...]] = None

        self._poller: Poller[List[Order]] = Poller(
            f"customer-{self._session_key[:8]}",
            fetch=self._client.get_pending_orders,
            apply=self._install_pending,
            interval_seconds=refresh_interval_seconds,
            keep_running=lambda: not self.is_idle,
        )

    @property
    def session_key(self) -> str:
        return self._session_key

    @property
    def current_order(self) -> Optional[Order]:
        with self._lock:
            return self._current_order

    @property
    def is_tracking(self) -> bool:
        return self._poller.is_running

    @property
    def is_idle(self) -> bool:
        if self._idle_timeout is None:
            return False
        return self._clock() - self._last_seen > self._idle_timeout

    def touch(self) -> None:
        """Record a request from this session's browser."""
        self._last_seen = self._clock()

    # =========================================================================
    # MENU / ORDERING
    # =========================================================================

    def load_menu(self, force: bool = False) -> List[DrinkMenuItem]:
        """
        Menu for this session (service menu or the fallback catalog).

        Never raises; see QueueServiceClient.get_menu().
        """
        if self._menu is None or force:
            self._menu = self._client.get_menu()
        return list(self._menu)

    def place_order(self, order_request: OrderRequest) -> Order:
        """
        Validate and submit an order, then start tracking it.

        Any previous order's tracking is stopped first. On failure the
        session is left exactly as it was.

        Returns:
            The order as created by the Queue Service

        Raises:
            OrderValidationError: If a field constraint is violated
            ServiceError: If the service rejected or failed the request
        """
        errors = order_request.field_errors(self.load_menu())
        if errors:
            self._logger.info(f"Order rejected by validation: {[e['field'] for e in errors]}")
            raise OrderValidationError(errors)

        order = self._client.create_order(order_request)

        self._poller.stop()
        with self._lock:
            self._current_order = order
            self._pending = None

        self._logger.info(f"Tracking order {order.order_number} (id={order.id})")
        self._poller.start()
        return order

    def queue_position(self) -> Optional[QueuePosition]:
        """
        Position and estimated wait of the current order.

        Before the first poll the position is unknown and the estimate
        falls back to the order's own wait/prep time.

        Returns:
            QueuePosition, or None if no order has been placed
        """
        with self._lock:
            order = self._current_order
            pending = self._pending or ()
        if order is None:
            return None
        return self._estimator.estimate(pending, order)

    def refresh(self) -> Optional[QueuePosition]:
        """
        Manual refresh of the pending snapshot.

        Raises:
            ServiceError: If the fetch failed (state untouched)
        """
        if self.current_order is None:
            return None
        self._poller.refresh_now()
        return self.queue_position()

    def new_order(self) -> None:
        """Forget the current order and stop tracking it."""
        self._poller.stop()
        with self._lock:
            self._current_order = None
            self._pending = None

    def close(self) -> None:
        """Session ended: stop tracking."""
        self._poller.stop()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _install_pending(self, pending: List[Order]) -> None:
        with self._lock:
            if self._current_order is None:
                return
            self._pending = tuple(pending)
            # Adopt the service's latest copy of our order when it is visible
            for order in pending:
                if order.id == self._current_order.id:
                    self._current_order = order
                    break


class CustomerSessionRegistry:
    """
    Thread-safe map of session key -> CustomerSession.

    Sessions are created only when a customer places an order. Every lookup
    first closes and drops idle sessions, then marks the returned session
    as seen.

    Usage:
        registry = CustomerSessionRegistry(client, estimator, 3.0, idle_timeout_seconds=120)
        customer = registry.get_or_create(flask_session["customer_key"])
        ...
        registry.remove(key)        # stops that session's tracking
        registry.close_all()        # at shutdown
    """

    def __init__(
        self,
        client: QueueServiceClient,
        estimator: WaitEstimator,
        refresh_interval_seconds: float = 3.0,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._client = client
        self._estimator = estimator
        self._refresh_interval = refresh_interval_seconds
        self._idle_timeout = idle_timeout_seconds
        self._clock = clock
        self._sessions: Dict[str, CustomerSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, session_key: str) -> Optional[CustomerSession]:
        self.evict_idle()
        with self._lock:
            session = self._sessions.get(session_key)
        if session is not None:
            session.touch()
        return session

    def get_or_create(self, session_key: str) -> CustomerSession:
        self.evict_idle()
        with self._lock:
            session = self._sessions.get(session_key)
            if session is None:
                session = CustomerSession(
                    self._client,
                    self._estimator,
                    refresh_interval_seconds=self._refresh_interval,
                    session_key=session_key,
                    idle_timeout_seconds=self._idle_timeout,
                    clock=self._clock,
                )
                self._sessions[session_key] = session
                logger.debug(f"Customer session {session_key[:8]} created")
        session.touch()
        return session

    def remove(self, session_key: str) -> bool:
        """
        Close and forget a session.

        Returns:
            True if a session was removed
        """
        with self._lock:
            session = self._sessions.pop(session_key, None)
        if session is None:
            return False
        session.close()
        logger.debug(f"Customer session {session_key[:8]} removed")
        return True

    def evict_idle(self) -> int:
        """
        Close and drop every idle session.

        Returns:
            Number of sessions evicted
        """
        with self._lock:
            idle = [key for key, session in self._sessions.items() if session.is_idle]
            evicted = [self._sessions.pop(key) for key in idle]
        for session in evicted:
            session.close()
        if evicted:
            logger.info(f"Evicted {len(evicted)} idle customer sessions")
        return len(evicted)

    def close_all(self) -> int:
        """
        Close every session (shutdown).

        Returns:
            Number of sessions closed
        """
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()
        logger.info(f"Closed {len(sessions)} customer sessions")
        return len(sessions)
