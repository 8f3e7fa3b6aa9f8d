"""
Shared API routes and error mapping.

Handles:
- /health - Health check with Queue Service and poller status
- /api/queue/stats - Queue statistics pass-through
- /api/queue/next - Next-order peek pass-through

error_response() turns application exceptions into the JSON error body
every blueprint returns, so the UI can show a blocking notification.
view_key() identifies the browser for the shared dashboard views.
"""

import uuid

from flask import (
    Blueprint,
    current_app,
    session,
)

from core.exceptions import (
    CafeQueueError,
    ConfirmationRequiredError,
    OrderValidationError,
    ProtocolError,
    ServiceError,
    TransportError,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

VIEW_KEY = "view_key"


def view_key() -> str:
    """This browser's key for the barista and simulation views (created on first use)."""
    key = session.get(VIEW_KEY)
    if not key:
        key = uuid.uuid4().hex
        session[VIEW_KEY] = key
    return key


def error_response(error: Exception):
    """
    Build a (body, status) JSON error response for an exception.

    Mapping:
        OrderValidationError       -> 400 with fieldErrors
        ConfirmationRequiredError  -> 409
        ProtocolError with fields  -> 400 with fieldErrors (service validation)
        TransportError             -> 503
        other ServiceError         -> 502
        ValueError                 -> 400
    """
    if isinstance(error, OrderValidationError):
        return {"error": error.message, "fieldErrors": error.field_errors}, 400

    if isinstance(error, ConfirmationRequiredError):
        return {"error": error.message, "confirmationRequired": True}, 409

    if isinstance(error, ProtocolError) and error.field_errors:
        return {"error": error.message, "fieldErrors": error.field_errors}, 400

    if isinstance(error, TransportError):
        return {"error": error.message}, 503

    if isinstance(error, ServiceError):
        return {"error": error.message}, 502

    if isinstance(error, CafeQueueError):
        return {"error": error.message}, 400

    if isinstance(error, ValueError):
        return {"error": str(error)}, 400

    logger.error(f"Unexpected error: {error}", exc_info=error)
    return {"error": "An unexpected error occurred. Please try again."}, 500


@api_bp.route("/api/queue/stats", methods=["GET"])
def queue_stats():
    """Queue statistics straight from the Queue Service."""
    client = current_app.config["QUEUE_CLIENT"]
    try:
        return client.get_queue_stats().to_dict()
    except ServiceError as e:
        return error_response(e)


@api_bp.route("/api/queue/next", methods=["GET"])
def queue_next():
    """The order the Queue Service would assign next (null if empty)."""
    client = current_app.config["QUEUE_CLIENT"]
    try:
        order = client.get_next_order()
    except ServiceError as e:
        return error_response(e)
    return {"order": order.to_dict() if order else None}


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check Queue Service reachability
    client = current_app.config.get("QUEUE_CLIENT")
    if client:
        try:
            client.get_queue_stats()
            health_status["checks"]["queue_service"] = "ok"
        except ServiceError as e:
            logger.warning(f"Health check: Queue Service unavailable: {e.message}")
            health_status["checks"]["queue_service"] = "unreachable"
            health_status["status"] = "degraded"
    else:
        health_status["checks"]["queue_service"] = "not_configured"
        health_status["status"] = "degraded"

    # Check barista dashboard poller
    barista_service = current_app.config.get("BARISTA_SERVICE")
    if barista_service and barista_service.is_polling:
        health_status["checks"]["barista_dashboard"] = (
            "stale" if barista_service.last_error else "ok"
        )
    else:
        health_status["checks"]["barista_dashboard"] = "idle"

    # Check simulation poller
    simulation_service = current_app.config.get("SIMULATION_SERVICE")
    if simulation_service and simulation_service.is_running:
        health_status["checks"]["simulation"] = "running"
    else:
        health_status["checks"]["simulation"] = "idle"

    # Customer tracking sessions
    registry = current_app.config.get("CUSTOMER_SESSIONS")
    health_status["checks"]["customer_sessions"] = len(registry) if registry else 0

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
