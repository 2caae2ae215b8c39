"""
Flask extensions for the e-bike tracker.

This module holds objects shared across blueprints (rate limiter, record
store, identity provider, clock) so routes can reach them without
importing the app module.
"""

import os
from datetime import datetime
from typing import Callable

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from ebike_tracker.config import LedgerSettings

EXTENSION_KEY = "ebike_tracker"

# Rate limiting storage (Redis in production, memory for development)
RATE_LIMIT_STORAGE = os.environ.get("RATE_LIMIT_STORAGE_URI", "memory://")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per hour", "200 per minute"],
    storage_uri=RATE_LIMIT_STORAGE,
    strategy="fixed-window",
    headers_enabled=True,
)


class RateLimits:
    """Common rate limit configurations for different endpoint types."""

    # Document reads
    READ_HEAVY = "500 per hour"

    # Document writes (every trip log is one write)
    WRITE_MODERATE = "300 per hour"

    # Login attempts
    AUTH_STRICT = "10 per minute"


def init_app(app, store, identity_provider, clock: Callable[[], datetime]) -> None:
    """Attach the tracker's collaborators to the Flask app."""
    app.extensions[EXTENSION_KEY] = {
        "store": store,
        "identity_provider": identity_provider,
        "clock": clock,
        "settings": LedgerSettings.from_config(app.config),
    }
    limiter.init_app(app)


def _extension(name: str):
    return current_app.extensions[EXTENSION_KEY][name]


def get_record_store():
    """Record store for the current app."""
    return _extension("store")


def get_identity_provider():
    """Identity provider for the current app."""
    return _extension("identity_provider")


def get_ledger_settings() -> LedgerSettings:
    return _extension("settings")


def now() -> datetime:
    """Current time from the app's clock."""
    return _extension("clock")()
