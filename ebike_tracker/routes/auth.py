"""
Authentication routes for the e-bike tracker.

Handles login, logout, auth status, and the login_required decorator
used by the data routes.
"""

import logging
from functools import wraps
from typing import Tuple

from flask import Blueprint, g, jsonify, request

from ebike_tracker.exceptions import AuthenticationError, ValidationError
from ebike_tracker.extensions import RateLimits, get_identity_provider, limiter
from ebike_tracker.utils.error_codes import ErrorCode, StructuredError
from ebike_tracker.utils.wide_events import log_auth_event

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def auth_error_response(error: AuthenticationError):
    """JSON body and status for a failed authentication."""
    structured_error = StructuredError(
        ErrorCode.E001_INVALID_TOKEN,
        error.message,
        remote_addr=request.remote_addr,
    )
    return jsonify(structured_error.to_response()), error.status_code


def login_required(view):
    """
    Resolve the request's user before running the view.

    The resolved Identity is stored on flask.g.identity. Requests that
    cannot be resolved get 401/403 without touching the record store.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        provider = get_identity_provider()
        try:
            g.identity = provider.resolve(request)
        except AuthenticationError as e:
            logger.info(f"Rejected {request.method} {request.path}: {e.message}")
            return auth_error_response(e)
        return view(*args, **kwargs)

    return wrapper


def parse_credentials(data) -> Tuple[str, str]:
    """
    Pull username and password out of a login body.

    Raises:
        ValidationError: If the body is not an object or a field is missing
    """
    if not isinstance(data, dict):
        raise ValidationError("username and password are required")

    for field in ("username", "password"):
        if not data.get(field):
            raise ValidationError(f"{field} is required", field=field)

    return str(data["username"]), str(data["password"])


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(RateLimits.AUTH_STRICT)
def login():
    """
    Exchange the configured username/password for a bearer token.

    Request body:
        username: Configured APP_USERNAME
        password: Configured APP_PASSWORD
    """
    provider = get_identity_provider()
    if not provider.supports_login:
        return jsonify({"error": "Login is not available"}), 404

    try:
        username, password = parse_credentials(request.get_json(silent=True))
    except ValidationError as e:
        structured_error = StructuredError(ErrorCode.E002_MISSING_REQUIRED_FIELD, e.message, field=e.field)
        return jsonify(structured_error.to_response()), 400

    try:
        result = provider.login(username, password)
    except AuthenticationError as e:
        log_auth_event("login", False, error=e.message, remote_addr=request.remote_addr)
        return jsonify({"error": e.message}), e.status_code

    log_auth_event("login", True, user_id=result["user"]["id"], remote_addr=request.remote_addr)
    return jsonify(result)


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """Clear session login state (bearer tokens simply stop being sent)."""
    get_identity_provider().logout()
    log_auth_event("logout", True, remote_addr=request.remote_addr)
    return jsonify({"message": "Logged out"})


@auth_bp.route("/auth/status", methods=["GET"])
def auth_status():
    """Report whether the request carries valid credentials."""
    try:
        identity = get_identity_provider().resolve(request)
    except AuthenticationError:
        return jsonify({"authenticated": False})

    return jsonify({"authenticated": True, "user": identity.to_dict()})
