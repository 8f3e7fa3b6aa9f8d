"""
Barista dashboard routes.

Handles:
- /api/barista/dashboard - Baristas, pending queue and summary numbers
- /api/barista/activate, /api/barista/deactivate - View lifecycle (poller)
- /api/barista/auto-refresh - Toggle periodic refresh for this browser
- /api/barista/refresh - Manual refresh
- /api/barista/<id>/take-next - Assign the next pending order
- /api/barista/orders/<id>/complete - Complete an order
- /api/barista/<id>/status - Change a barista's status

The dashboard service is shared; each browser is one viewer, identified by
view_key(). Polling runs while any viewer has the view open with
auto-refresh on.
"""

from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import ServiceError
from logging_config import get_logger
from .api import error_response, view_key


# Module logger
logger = get_logger(__name__)

barista_bp = Blueprint("barista", __name__)


def _service():
    service = current_app.config["BARISTA_SERVICE"]
    service.touch(view_key())
    return service


def _dashboard_body(service):
    snapshot = service.get_snapshot()

    baristas = []
    for barista in snapshot.baristas:
        current = snapshot.current_order_for(barista.id)
        data = barista.to_dict()
        data["currentOrder"] = current.to_dict() if current else None
        data["canTakeNext"] = service.can_take_next(barista.id)
        baristas.append(data)

    return {
        "summary": snapshot.summary(),
        "baristas": baristas,
        "pendingOrders": [order.to_dict() for order in snapshot.pending_orders],
        "fetchedAt": snapshot.fetched_at.isoformat() if snapshot.fetched_at else None,
        "stale": service.last_error is not None,
        "error": service.last_error,
        "autoRefresh": service.auto_refresh_for(view_key()),
        "polling": service.is_polling,
    }


@barista_bp.route("/api/barista/dashboard", methods=["GET"])
def dashboard():
    """Current dashboard snapshot (empty until the first refresh)."""
    return _dashboard_body(_service())


@barista_bp.route("/api/barista/activate", methods=["POST"])
def activate():
    service = _service()
    service.activate(view_key())
    return _dashboard_body(service)


@barista_bp.route("/api/barista/deactivate", methods=["POST"])
def deactivate():
    service = _service()
    service.deactivate(view_key())
    return {"active": False, "polling": service.is_polling}


@barista_bp.route("/api/barista/auto-refresh", methods=["PUT"])
def auto_refresh():
    """Body (JSON): enabled (bool)"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("enabled"), bool):
        return {"error": "'enabled' must be true or false"}, 400

    service = _service()
    key = view_key()
    service.set_auto_refresh(data["enabled"], key)
    return {"autoRefresh": service.auto_refresh_for(key), "polling": service.is_polling}


@barista_bp.route("/api/barista/refresh", methods=["POST"])
def refresh():
    """Manual "Refresh Now"."""
    service = _service()
    try:
        service.refresh()
    except ServiceError as e:
        return error_response(e)
    return _dashboard_body(service)


@barista_bp.route("/api/barista/<int:barista_id>/take-next", methods=["POST"])
def take_next(barista_id: int):
    """Assign the highest-priority pending order to this barista."""
    service = _service()
    if not service.can_take_next(barista_id):
        return {"error": "No pending orders to take, or barista already has an order in progress"}, 409

    try:
        order = service.take_next_order(barista_id)
    except ServiceError as e:
        logger.warning(f"Take next failed for barista {barista_id}: {e.message}")
        return error_response(e)

    body = _dashboard_body(service)
    body["assignedOrder"] = order.to_dict() if order else None
    return body


@barista_bp.route("/api/barista/orders/<int:order_id>/complete", methods=["POST"])
def complete(order_id: int):
    service = _service()
    try:
        service.complete_order(order_id)
    except ServiceError as e:
        logger.warning(f"Complete failed for order {order_id}: {e.message}")
        return error_response(e)
    return _dashboard_body(service)


@barista_bp.route("/api/barista/<int:barista_id>/status", methods=["PUT"])
def set_status(barista_id: int):
    """Body (JSON): status (AVAILABLE / BUSY / OFFLINE)"""
    data = request.get_json(silent=True) or {}
    service = _service()
    try:
        service.set_barista_status(barista_id, data.get("status"))
    except (ValueError, ServiceError) as e:
        return error_response(e)
    return _dashboard_body(service)
