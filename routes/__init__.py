"""
Flask route blueprints for CafeQueueWeb.

This module contains all route handlers organized by view:
- customer: Menu, order placement, queue position tracking
- barista: Barista dashboard and assignment workflow
- simulation: Load test generation and metrics dashboard
- api: Health check, queue pass-throughs, shared error mapping

Each blueprint is registered with the Flask app in create_app().
"""

from .api import api_bp
from .customer import customer_bp
from .barista import barista_bp
from .simulation import simulation_bp

__all__ = [
    "api_bp",
    "customer_bp",
    "barista_bp",
    "simulation_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(api_bp)
    app.register_blueprint(customer_bp)
    app.register_blueprint(barista_bp)
    app.register_blueprint(simulation_bp)
