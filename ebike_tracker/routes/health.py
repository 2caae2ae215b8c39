"""
Health check route for the e-bike tracker.
"""

from flask import Blueprint, jsonify

from ebike_tracker.extensions import limiter, now

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
@limiter.exempt
def health():
    """Liveness probe; does not touch the record store."""
    return jsonify({"status": "OK", "timestamp": now().isoformat()})
