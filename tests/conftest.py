"""
Pytest fixtures for e-bike tracker tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ebike_tracker.app import create_app
from ebike_tracker.config import Config, LedgerSettings
from ebike_tracker.services.record_store import MemoryRecordStore
from ebike_tracker.utils.auth_utils import STATIC_USER_ID, Identity

# 12:00 in Asia/Shanghai on 2024-01-01
FIXED_NOW = datetime(2024, 1, 1, 4, 0, 0, tzinfo=timezone.utc)


class TrackerTestConfig(Config):
    """Configuration used by the test app."""

    TESTING = True
    SECRET_KEY = 'test-secret-key'
    AUTH_STRATEGY = 'static'
    APP_USERNAME = 'rider'
    APP_PASSWORD = 'correct-horse'
    REDIS_URL = 'memory://'
    LEDGER_TIMEZONE = 'Asia/Shanghai'
    RETENTION_MONTHS = 6
    DATA_TTL_SECONDS = 15552000
    RATELIMIT_ENABLED = False


class FakeClock:
    """Settable time source."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Ledger settings matching the test app."""
    return LedgerSettings(timezone='Asia/Shanghai', retention_months=6, ttl_seconds=15552000)


@pytest.fixture
def store(clock):
    return MemoryRecordStore(key_prefix='ebike:', clock=clock)


@pytest.fixture
def app(store, clock):
    """Create application for testing."""
    return create_app(TrackerTestConfig, store=store, clock=clock)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Authorization header with a valid token for the configured rider."""
    provider = app.extensions['ebike_tracker']['identity_provider']
    token = provider.issue_token(Identity(user_id=STATIC_USER_ID, username='rider'))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def sample_document():
    """A stored document mid-way through a charge."""
    return {
        'totalMileage': 60,
        'currentMileage': 10,
        'destinations': [
            {'name': 'Home', 'mileage': 7.7},
            {'name': 'Work', 'mileage': 1.7},
        ],
        'selectedDestinations': [],
        'dailyMileage': {'2024-01-01': 5},
    }
