"""
Configuration for CafeQueueWeb.

The Queue Service is required - every view reads from it.
There is no local data store and no offline mode (only the menu has a
static fallback catalog).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "cafe_queue_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # Logging (level name, and log directory used when ENVIRONMENT=production)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "")
    LOG_DIR = os.environ.get("LOG_DIR") or str(BASE_DIR / "logs")

    # ==========================================================================
    # Queue Service
    # ==========================================================================
    # Base URL of the external Queue Service REST API.
    # All paths (/orders, /baristas, /queue, /drinks, /test) are relative to it.
    QUEUE_SERVICE_URL = os.environ.get(
        "QUEUE_SERVICE_URL", "http://localhost:8080/api"
    )

    # Per-request timeout in seconds. A hung call only delays one view's tick.
    QUEUE_SERVICE_TIMEOUT = float(os.environ.get("QUEUE_SERVICE_TIMEOUT", "10"))

    # ==========================================================================
    # Polling intervals (seconds)
    # ==========================================================================
    # CUSTOMER_POLL_INTERVAL: queue-position tracking after an order is placed
    # BARISTA_POLL_INTERVAL: barista dashboard (baristas + pending orders)
    # SIMULATION_POLL_INTERVAL: load-test metrics while a test is running
    # ==========================================================================
    CUSTOMER_POLL_INTERVAL = float(os.environ.get("CUSTOMER_POLL_INTERVAL", "3"))
    BARISTA_POLL_INTERVAL = float(os.environ.get("BARISTA_POLL_INTERVAL", "5"))
    SIMULATION_POLL_INTERVAL = float(os.environ.get("SIMULATION_POLL_INTERVAL", "2"))

    # A view (customer session, barista dashboard, simulation monitor) that
    # sends no request for this many seconds is treated as closed: its
    # poller stops and its session state is dropped.
    VIEW_IDLE_TIMEOUT = float(os.environ.get("VIEW_IDLE_TIMEOUT", "120"))

    # ==========================================================================
    # Wait-time estimator
    # ==========================================================================
    # Assumed minutes of service per order ahead in the queue.
    # Display heuristic only - the Queue Service owns the real estimate.
    #
    # Formula: wait = (position - 1) x overhead + own prep time
    # ==========================================================================
    PER_ORDER_OVERHEAD_MINUTES = int(
        os.environ.get("PER_ORDER_OVERHEAD_MINUTES", "3")
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    QUEUE_SERVICE_URL = "http://queue.test/api"
