"""
Simulation (load test) routes.

Handles:
- /api/simulation/generate - Generate a synthetic load and start polling
- /api/simulation/clear?confirm=true - Discard all test data (destructive)
- /api/simulation/dashboard - Aggregated metrics for the charts
- /api/simulation/refresh - Manual metrics refresh
- /api/simulation/activate, /api/simulation/deactivate - View lifecycle
- /api/simulation/timeseries - Order counts over time

Each browser is one viewer of the shared monitor, identified by view_key().
"""

from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import CafeQueueError
from logging_config import get_logger
from .api import error_response, view_key


# Module logger
logger = get_logger(__name__)

simulation_bp = Blueprint("simulation", __name__)

TRUE_VALUES = ("1", "true", "yes")


def _service():
    service = current_app.config["SIMULATION_SERVICE"]
    service.touch(view_key())
    return service


def _dashboard_body(service):
    dashboard = service.get_dashboard()
    return {
        "running": service.is_running,
        "polling": service.is_polling,
        "error": service.last_error,
        "dashboard": dashboard.to_dict() if dashboard else None,
    }


@simulation_bp.route("/api/simulation/generate", methods=["POST"])
def generate():
    service = _service()
    try:
        message = service.generate()
    except CafeQueueError as e:
        logger.warning(f"Load test generation failed: {e.message}")
        return error_response(e)

    body = _dashboard_body(service)
    body["message"] = message
    return body


@simulation_bp.route("/api/simulation/clear", methods=["DELETE"])
def clear():
    """Clear all test data. Requires ?confirm=true."""
    confirmed = request.args.get("confirm", "").lower() in TRUE_VALUES
    service = _service()
    try:
        message = service.clear(confirmed=confirmed)
    except CafeQueueError as e:
        return error_response(e)

    body = _dashboard_body(service)
    body["message"] = message
    return body


@simulation_bp.route("/api/simulation/dashboard", methods=["GET"])
def dashboard():
    return _dashboard_body(_service())


@simulation_bp.route("/api/simulation/refresh", methods=["POST"])
def refresh():
    service = _service()
    try:
        service.refresh()
    except CafeQueueError as e:
        return error_response(e)
    return _dashboard_body(service)


@simulation_bp.route("/api/simulation/activate", methods=["POST"])
def activate():
    service = _service()
    service.activate(view_key())
    return _dashboard_body(service)


@simulation_bp.route("/api/simulation/deactivate", methods=["POST"])
def deactivate():
    service = _service()
    service.deactivate(view_key())
    return _dashboard_body(service)


@simulation_bp.route("/api/simulation/timeseries", methods=["GET"])
def timeseries():
    try:
        points = _service().get_time_series()
    except CafeQueueError as e:
        return error_response(e)
    return {"points": [point.to_dict() for point in points]}
