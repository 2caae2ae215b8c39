"""
E-Bike Mileage Tracker - Flask Application

Stores one document per rider (battery range, mileage since the last full
charge, destination presets, per-day mileage ledger) and serves it to the
dashboard.
"""

import logging

from flask import Flask, jsonify, request

from ebike_tracker import extensions
from ebike_tracker.config import Config
from ebike_tracker.routes import register_blueprints
from ebike_tracker.services.record_store import get_record_store
from ebike_tracker.utils.auth_utils import get_identity_provider
from ebike_tracker.utils.error_codes import ErrorCode, StructuredError
from ebike_tracker.utils.timezone import get_reference_zone, utc_now

# Configure logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_object=Config, store=None, identity_provider=None, clock=None):
    """
    Create the Flask application.

    Args:
        config_object: Config class (or object) to load settings from
        store: Record store; built from REDIS_URL when omitted
        identity_provider: Identity provider; built from AUTH_STRATEGY when omitted
        clock: Callable returning the current aware datetime (default: utc_now)

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Fail at startup rather than on the first save
    get_reference_zone(app.config['LEDGER_TIMEZONE'])

    clock = clock or utc_now
    if store is None:
        store = get_record_store(app.config, clock=clock)
    if identity_provider is None:
        identity_provider = get_identity_provider(app.config)

    extensions.init_app(app, store, identity_provider, clock)
    register_blueprints(app)
    register_handlers(app)

    logger.info(
        f"E-bike tracker started (auth: {identity_provider.name}, "
        f"ledger zone: {app.config['LEDGER_TIMEZONE']}, retention: {app.config['RETENTION_MONTHS']} months)"
    )
    return app


def register_handlers(app):
    """Register CORS headers and JSON error handlers."""

    @app.after_request
    def add_cors_headers(response):
        if request.path.startswith('/api/'):
            response.headers['Access-Control-Allow-Origin'] = app.config['CORS_ORIGIN']
            response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type'
            response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        return response

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'error': 'Too many requests'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        structured_error = StructuredError(
            ErrorCode.E500_INTERNAL_SERVER_ERROR,
            'Internal server error',
            exception=getattr(error, 'original_exception', None),
            path=request.path,
        )
        logger.error(str(structured_error), exc_info=True)
        return jsonify(structured_error.to_response()), 500


if __name__ == '__main__':
    app = create_app()
    app.run(host=Config.FLASK_HOST, port=Config.FLASK_PORT, debug=Config.DEBUG)
