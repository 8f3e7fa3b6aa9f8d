"""
Customer routes.

Handles:
- /api/menu - Drink menu (falls back to the static catalog)
- /api/orders - Place an order for this browser session
- /api/orders/current - Current order, queue position and estimated wait
- /api/orders/current/refresh - Manual position refresh
- DELETE /api/orders/current - Start a new order (ends the session)

A browser session gets its own CustomerSession, keyed by a random value
stored in the Flask session cookie, when it places its first order.
Browsing the menu never creates one.
"""

import uuid

import bleach
from flask import (
    Blueprint,
    current_app,
    request,
    session,
)

from core.exceptions import CafeQueueError, OrderValidationError, ServiceError
from models.order_request import OrderRequest
from logging_config import get_logger
from .api import error_response


# Module logger
logger = get_logger(__name__)

customer_bp = Blueprint("customer", __name__)

# Constants
SESSION_KEY = "customer_key"
MAX_NAME_LENGTH = 100
MAX_PHONE_LENGTH = 30
MAX_NOTES_LENGTH = 500


def _sanitize_text(text, max_length: int = None) -> str:
    """Sanitize user input text."""
    if not text:
        return ""
    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def _parse_int(value):
    """int(value), or None when missing / not a whole number."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _customer_session(create: bool = False):
    """This browser's CustomerSession (created on demand when asked)."""
    registry = current_app.config["CUSTOMER_SESSIONS"]
    key = session.get(SESSION_KEY)

    if not key:
        if not create:
            return None
        key = uuid.uuid4().hex
        session[SESSION_KEY] = key

    if create:
        return registry.get_or_create(key)
    return registry.get(key)


def _current_order_body(customer):
    order = customer.current_order
    if order is None:
        return {"order": None, "queue": None, "tracking": False}
    position = customer.queue_position()
    return {
        "order": order.to_dict(),
        "queue": position.to_dict() if position else None,
        "tracking": customer.is_tracking,
    }


@customer_bp.route("/api/menu", methods=["GET"])
def menu():
    """Drink menu. Never fails - falls back to the static catalog."""
    customer = _customer_session()
    if customer is not None:
        drinks = customer.load_menu()
    else:
        drinks = current_app.config["QUEUE_CLIENT"].get_menu()
    return {"drinks": [item.to_dict() for item in drinks]}


@customer_bp.route("/api/orders", methods=["POST"])
def place_order():
    """
    Place an order and start tracking its queue position.

    Body (JSON): customerName, customerPhone, drinkId, quantity,
    customizationNotes (optional), emergencyFlag (optional)
    """
    data = request.get_json(silent=True) or {}

    emergency_flag = data.get("emergencyFlag", False)
    if not isinstance(emergency_flag, bool):
        return error_response(OrderValidationError([
            {"field": "emergencyFlag", "message": "Emergency flag must be true or false"}
        ]))

    quantity = _parse_int(data.get("quantity", 1))
    order_request = OrderRequest(
        customer_name=_sanitize_text(data.get("customerName"), MAX_NAME_LENGTH),
        customer_phone=_sanitize_text(data.get("customerPhone"), MAX_PHONE_LENGTH),
        drink_id=_parse_int(data.get("drinkId")),
        quantity=quantity if quantity is not None else 0,
        customization_notes=_sanitize_text(data.get("customizationNotes"), MAX_NOTES_LENGTH) or None,
        emergency_flag=emergency_flag,
    )

    customer = _customer_session(create=True)
    try:
        order = customer.place_order(order_request)
    except CafeQueueError as e:
        logger.warning(f"Order placement failed: {e.message}")
        return error_response(e)

    logger.info(f"Order placed: {order.order_number}")
    return _current_order_body(customer), 201


@customer_bp.route("/api/orders/current", methods=["GET"])
def current_order():
    """Current order with its latest derived position and wait."""
    customer = _customer_session()
    if customer is None:
        return {"order": None, "queue": None, "tracking": False}
    return _current_order_body(customer)


@customer_bp.route("/api/orders/current/refresh", methods=["POST"])
def refresh_current_order():
    """Manual refresh of the queue position."""
    customer = _customer_session()
    if customer is None or customer.current_order is None:
        return {"error": "No order placed in this session"}, 404

    try:
        customer.refresh()
    except ServiceError as e:
        return error_response(e)
    return _current_order_body(customer)


@customer_bp.route("/api/orders/current", methods=["DELETE"])
def new_order():
    """Forget the current order, stop tracking it and end the session."""
    key = session.pop(SESSION_KEY, None)
    if key:
        current_app.config["CUSTOMER_SESSIONS"].remove(key)
    return {"order": None, "queue": None, "tracking": False}
