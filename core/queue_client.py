"""
Queue Service REST client.

This module is the typed request/response boundary to the external Queue
Service, the system of record for orders and baristas. One method per
endpoint; every method returns decoded models from ``models``.

FAILURE POLICY:
    - No retries, no backoff. A failed call raises a ServiceError subclass
      and the caller decides what the user sees.
    - The menu fetch is the single exception: on any failure it logs and
      returns the static FALLBACK_MENU so ordering is never blocked.

THREAD SAFETY:
    - requests.Session is shared; each call builds an independent request
      and returns independent data.
    - Pollers and request threads may share one client instance.

Usage:
    client = QueueServiceClient("http://localhost:8080/api", timeout_seconds=10)

    pending = client.get_pending_orders()      # priority order preserved
    order = client.assign_next_order(barista_id=3)
    metrics = client.get_test_metrics()

    client.close()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

import requests

from models.barista import Barista, BaristaStatus
from models.menu import DrinkMenuItem, FALLBACK_MENU
from models.metrics import QueueStats, TestMetrics, TimeSeriesPoint, sort_time_series
from models.order import Order, OrderStatus
from models.order_request import OrderRequest
from logging_config import get_logger
from .exceptions import (
    MalformedResponseError,
    OrderValidationError,
    ProtocolError,
    ServiceError,
    TransportError,
)


T = TypeVar("T")

# Decoders raise these on a wrong-shaped payload
_DECODE_ERRORS = (KeyError, TypeError, ValueError)


class QueueServiceClient:
    """
    Client for the Queue Service REST contract.

    Order endpoints:
        get_all_orders, get_pending_orders, get_orders_by_status, get_order,
        create_order, update_order_status, complete_order, cancel_order,
        mark_emergency

    Barista endpoints:
        get_all_baristas, get_available_baristas, get_barista, create_barista,
        update_barista_status, assign_next_order, get_barista_orders

    Queue / menu endpoints:
        get_queue_stats, get_next_order, get_menu

    Load-test endpoints:
        generate_test_orders, get_test_metrics, get_time_series, clear_test_data

    Attributes:
        base_url: Service root, without trailing slash
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Queue Service root URL (e.g. http://localhost:8080/api)
            timeout_seconds: Per-request timeout
            session: Optional pre-configured requests.Session
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required - set QUEUE_SERVICE_URL")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.setdefault("Content-Type", "application/json")
        self._session.headers.setdefault("Accept", "application/json")
        self._logger = logger or get_logger(__name__)

        self._logger.debug(f"QueueServiceClient initialized for {self._base_url}")

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    # =========================================================================
    # ORDER ENDPOINTS
    # =========================================================================

    def get_all_orders(self) -> List[Order]:
        """GET /orders"""
        return self._get_list("/orders", Order.from_api)

    def get_pending_orders(self) -> List[Order]:
        """
        GET /orders/pending

        The service returns pending orders already sorted by its priority
        ranking. The order of the list is preserved as-is.
        """
        return self._get_list("/orders/pending", Order.from_api)

    def get_orders_by_status(self, status: Union[OrderStatus, str]) -> List[Order]:
        """GET /orders/status/{status}"""
        status_value = OrderStatus.parse(status).value
        return self._get_list(f"/orders/status/{status_value}", Order.from_api)

    def get_order(self, order_id: int) -> Order:
        """GET /orders/{id}"""
        return self._get_one(f"/orders/{int(order_id)}", Order.from_api)

    def create_order(self, order_request: OrderRequest) -> Order:
        """
        POST /orders

        The request is checked against the field constraints before it is
        sent (drink membership is checked by the caller, which owns the menu).

        Raises:
            OrderValidationError: If a field constraint is violated
            ServiceError: If the service rejects or fails the request
        """
        errors = order_request.field_errors()
        if errors:
            raise OrderValidationError(errors)

        payload = order_request.to_payload()
        self._logger.info(
            f"Creating order: drink={payload['drinkId']} qty={payload['quantity']} "
            f"emergency={payload['emergencyFlag']}"
        )

        response = self._request("POST", "/orders", json_body=payload)
        order = self._decode(response, "POST", "/orders", Order.from_api)
        self._logger.info(f"Order created: {order.order_number} (id={order.id})")
        return order

    def update_order_status(
        self,
        order_id: int,
        status: Union[OrderStatus, str]
    ) -> Optional[Order]:
        """PUT /orders/{id}/status?status="""
        status_value = OrderStatus.parse(status).value
        return self._mutate_order(
            "PUT", f"/orders/{int(order_id)}/status", params={"status": status_value}
        )

    def complete_order(self, order_id: int) -> Optional[Order]:
        """PUT /orders/{id}/complete - completionTime is set server-side."""
        return self._mutate_order("PUT", f"/orders/{int(order_id)}/complete")

    def cancel_order(self, order_id: int) -> Optional[Order]:
        """PUT /orders/{id}/cancel"""
        return self._mutate_order("PUT", f"/orders/{int(order_id)}/cancel")

    def mark_emergency(self, order_id: int) -> Optional[Order]:
        """PUT /orders/{id}/emergency"""
        return self._mutate_order("PUT", f"/orders/{int(order_id)}/emergency")

    # =========================================================================
    # BARISTA ENDPOINTS
    # =========================================================================

    def get_all_baristas(self) -> List[Barista]:
        """GET /baristas"""
        return self._get_list("/baristas", Barista.from_api)

    def get_available_baristas(self) -> List[Barista]:
        """GET /baristas/available"""
        return self._get_list("/baristas/available", Barista.from_api)

    def get_barista(self, barista_id: int) -> Barista:
        """GET /baristas/{id}"""
        return self._get_one(f"/baristas/{int(barista_id)}", Barista.from_api)

    def create_barista(self, name: str) -> Barista:
        """POST /baristas {name}"""
        name = (name or "").strip()
        if not name:
            raise ValueError("Barista name is required")

        response = self._request("POST", "/baristas", json_body={"name": name})
        return self._decode(response, "POST", "/baristas", Barista.from_api)

    def update_barista_status(
        self,
        barista_id: int,
        status: Union[BaristaStatus, str]
    ) -> Optional[Barista]:
        """PUT /baristas/{id}/status?status="""
        status_value = BaristaStatus.parse(status).value
        path = f"/baristas/{int(barista_id)}/status"
        response = self._request("PUT", path, params={"status": status_value})
        return self._decode(response, "PUT", path, Barista.from_api, allow_empty=True)

    def assign_next_order(self, barista_id: int) -> Optional[Order]:
        """
        POST /baristas/{id}/assign-next

        Asks the service to hand its highest-priority pending order to the
        barista. The service may answer with the assigned order or with an
        empty body; either way the caller must re-poll for the final state.

        Raises:
            ProtocolError: If the service rejects the assignment
                (e.g. no pending orders, barista already busy)
        """
        path = f"/baristas/{int(barista_id)}/assign-next"
        self._logger.info(f"Requesting next order for barista {barista_id}")
        return self._mutate_order("POST", path)

    def get_barista_orders(self, barista_id: int) -> List[Order]:
        """GET /baristas/{id}/orders"""
        return self._get_list(f"/baristas/{int(barista_id)}/orders", Order.from_api)

    # =========================================================================
    # QUEUE / MENU ENDPOINTS
    # =========================================================================

    def get_queue_stats(self) -> QueueStats:
        """GET /queue/stats"""
        return self._get_one("/queue/stats", QueueStats.from_api)

    def get_next_order(self) -> Optional[Order]:
        """
        GET /queue/next

        Returns:
            The order the service would assign next, or None if the queue
            is empty (empty body, JSON null or 204)
        """
        response = self._request("GET", "/queue/next")
        return self._decode(response, "GET", "/queue/next", Order.from_api, allow_empty=True)

    def get_menu(self) -> List[DrinkMenuItem]:
        """
        GET /drinks, falling back to the static catalog.

        Never raises: menu unavailability must not block order placement.

        Returns:
            Service menu, or FALLBACK_MENU on any failure or empty menu
        """
        try:
            menu = self._get_list("/drinks", DrinkMenuItem.from_api)
        except ServiceError as e:
            self._logger.warning(f"Menu unavailable, using fallback catalog: {e.message}")
            return list(FALLBACK_MENU)

        if not menu:
            self._logger.warning("Menu endpoint returned no drinks, using fallback catalog")
            return list(FALLBACK_MENU)

        return menu

    # =========================================================================
    # LOAD-TEST ENDPOINTS
    # =========================================================================

    def generate_test_orders(self) -> str:
        """
        POST /test/generate

        Returns:
            The service's confirmation text
        """
        self._logger.info("Requesting synthetic test order generation")
        response = self._request("POST", "/test/generate")
        message = response.text.strip()
        self._logger.info(f"Test generation confirmed: {message}")
        return message

    def get_test_metrics(self) -> TestMetrics:
        """GET /test/metrics"""
        return self._get_one("/test/metrics", TestMetrics.from_api)

    def get_time_series(self) -> List[TimeSeriesPoint]:
        """GET /test/timeseries, sorted chronologically."""
        return sort_time_series(self._get_list("/test/timeseries", TimeSeriesPoint.from_api))

    def clear_test_data(self) -> str:
        """
        DELETE /test/clear

        Destructive and irreversible. Confirmation is the caller's job
        (see SimulationService.clear).

        Returns:
            The service's confirmation text
        """
        self._logger.warning("Clearing all synthetic test data")
        response = self._request("DELETE", "/test/clear")
        return response.text.strip()

    # =========================================================================
    # REQUEST / DECODE HELPERS
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> requests.Response:
        """
        Send one request. No retry.

        Raises:
            TransportError: On connection failure or timeout
            ProtocolError: On any non-2xx status
        """
        url = f"{self._base_url}{path}"
        self._logger.debug(f"{method} {path} params={params}")

        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=self._timeout,
            )
        except requests.Timeout:
            self._logger.error(f"{method} {path} timed out after {self._timeout}s")
            raise TransportError(method, path, f"timed out after {self._timeout}s")
        except requests.RequestException as e:
            self._logger.error(f"{method} {path} failed: {e}")
            raise TransportError(method, path, str(e))

        if not response.ok:
            field_errors, service_message = self._parse_error_body(response)
            self._logger.error(
                f"{method} {path} returned HTTP {response.status_code}"
                + (f": {service_message}" if service_message else "")
            )
            raise ProtocolError(
                method,
                path,
                response.status_code,
                body=response.text,
                field_errors=field_errors,
                service_message=service_message,
            )

        return response

    @staticmethod
    def _parse_error_body(response: requests.Response):
        """
        Extract validation errors from an error response.

        Spring-style bodies look like:
            {"message": "...", "errors": [{"field": "quantity", "defaultMessage": "..."}]}

        Returns:
            (field_errors, service_message) - both may be empty/None
        """
        try:
            body = response.json()
        except ValueError:
            text = response.text.strip()
            return [], (text[:200] if text else None)

        if not isinstance(body, dict):
            return [], None

        field_errors = []
        for error in body.get("errors") or []:
            if isinstance(error, dict):
                field_errors.append({
                    "field": str(error.get("field", "")),
                    "message": str(error.get("defaultMessage") or error.get("message") or ""),
                })

        service_message = body.get("message") or body.get("error")
        return field_errors, service_message

    def _decode(
        self,
        response: requests.Response,
        method: str,
        path: str,
        decoder: Callable[[Any], T],
        allow_empty: bool = False
    ) -> Optional[T]:
        """
        Decode a single-entity response.

        Raises:
            MalformedResponseError: If the body is missing (and not allowed),
                not JSON, or not the expected shape
        """
        payload = self._json_or_none(response, method, path)

        if payload is None:
            if allow_empty:
                return None
            raise MalformedResponseError(method, path, "empty response body")

        try:
            return decoder(payload)
        except _DECODE_ERRORS as e:
            self._logger.error(f"Could not decode {method} {path}: {e}")
            raise MalformedResponseError(method, path, str(e))

    def _json_or_none(self, response: requests.Response, method: str, path: str) -> Any:
        """Parse the body as JSON; empty body (or 204) gives None."""
        if response.status_code == 204 or not response.content or not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            self._logger.error(f"Invalid JSON from {method} {path}: {e}")
            raise MalformedResponseError(method, path, f"invalid JSON: {e}")

    def _get_one(self, path: str, decoder: Callable[[Any], T]) -> T:
        response = self._request("GET", path)
        return self._decode(response, "GET", path, decoder)

    def _get_list(self, path: str, decoder: Callable[[Any], T]) -> List[T]:
        """GET a JSON array and decode each element."""
        response = self._request("GET", path)
        payload = self._json_or_none(response, "GET", path)

        if payload is None:
            raise MalformedResponseError("GET", path, "empty response body")
        if not isinstance(payload, list):
            raise MalformedResponseError(
                "GET", path, f"expected a list, got {type(payload).__name__}"
            )

        try:
            return [decoder(item) for item in payload]
        except _DECODE_ERRORS as e:
            self._logger.error(f"Could not decode GET {path}: {e}")
            raise MalformedResponseError("GET", path, str(e))

    def _mutate_order(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Order]:
        """Send an order mutation; the service may or may not echo the order."""
        response = self._request(method, path, params=params)
        return self._decode(response, method, path, Order.from_api, allow_empty=True)
