"""
CafeQueueWeb - Flask Application Entry Point.

This is a slim app factory that:
1. Configures logging
2. Creates the shared Queue Service client (fail-fast on bad config)
3. Creates the view services (customer sessions, barista dashboard,
   simulation monitor)
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    └── Cleanup on shutdown (stop pollers, close HTTP session)

    Barista Poller (background, while any browser has the dashboard open)
    └── 5-second refresh: baristas + pending + in-progress orders

    Simulation Poller (background, while a load test runs and is watched)
    └── 2-second refresh: test metrics

    Customer Pollers (one per placed order)
    └── 3-second refresh: pending orders -> position / wait

No poller starts with the app. Views not seen for VIEW_IDLE_TIMEOUT seconds
are dropped, which stops their pollers.

The Queue Service owns every order and barista. This app only holds
per-view snapshots, each replaced wholesale by its own poller.
"""

from __future__ import annotations

import atexit
import logging
import os

from flask import Flask
from werkzeug.exceptions import HTTPException

from logging_config import level_from_name, setup_logging, get_logger
from core.exceptions import CafeQueueError
from core.queue_client import QueueServiceClient
from modules.wait_estimator import WaitEstimator
from services.customer_service import CustomerSessionRegistry
from services.barista_service import BaristaDashboardService
from services.simulation_service import SimulationService
from routes import register_blueprints
from routes.api import error_response


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(config_object: str = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class to load

    Returns:
        Configured Flask application

    Raises:
        ValueError: If QUEUE_SERVICE_URL is empty
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    default_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    log_level = level_from_name(app.config.get("LOG_LEVEL"), default_level)
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        log_dir=app.config.get("LOG_DIR"),
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting CafeQueueWeb in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    try:
        client = QueueServiceClient(
            app.config["QUEUE_SERVICE_URL"],
            timeout_seconds=app.config["QUEUE_SERVICE_TIMEOUT"],
        )
    except ValueError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    app.config["QUEUE_CLIENT"] = client
    logger.info(f"Queue Service: {client.base_url}")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    estimator = WaitEstimator(app.config["PER_ORDER_OVERHEAD_MINUTES"])
    idle_timeout = app.config["VIEW_IDLE_TIMEOUT"]

    customer_sessions = CustomerSessionRegistry(
        client,
        estimator,
        refresh_interval_seconds=app.config["CUSTOMER_POLL_INTERVAL"],
        idle_timeout_seconds=idle_timeout,
    )
    app.config["CUSTOMER_SESSIONS"] = customer_sessions

    barista_service = BaristaDashboardService(
        client,
        refresh_interval_seconds=app.config["BARISTA_POLL_INTERVAL"],
        idle_timeout_seconds=idle_timeout,
    )
    app.config["BARISTA_SERVICE"] = barista_service

    simulation_service = SimulationService(
        client,
        refresh_interval_seconds=app.config["SIMULATION_POLL_INTERVAL"],
        idle_timeout_seconds=idle_timeout,
    )
    app.config["SIMULATION_SERVICE"] = simulation_service

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        barista_service.close()
        simulation_service.close()
        customer_sessions.close_all()
        client.close()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(CafeQueueError)
    def handle_cafe_queue_error(e):
        return error_response(e)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return {"error": e.description}, e.code

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "An unexpected error occurred. Please try again."}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    # The reloader would start a second set of pollers
    app.run(debug=debug_mode, use_reloader=False)
