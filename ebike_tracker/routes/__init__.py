"""
Routes module for the e-bike tracker's Flask blueprints.

This module contains Flask blueprints that handle different areas of the API.
"""

from ebike_tracker.routes.auth import auth_bp
from ebike_tracker.routes.data import data_bp
from ebike_tracker.routes.health import health_bp

__all__ = [
    "auth_bp",
    "data_bp",
    "health_bp",
]


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(data_bp, url_prefix="/api")
    app.register_blueprint(health_bp, url_prefix="/api")
