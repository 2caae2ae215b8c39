"""
Tests for record store adapters.

Tests document persistence including:
- Redis GET/SETEX with JSON encoding (Redis client mocked)
- Wrapping Redis failures in StorageError
- In-memory store expiry against an injected clock
- Store selection from configuration
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from ebike_tracker.exceptions import StorageError
from ebike_tracker.services.record_store import (
    MemoryRecordStore,
    RedisRecordStore,
    get_record_store,
)

from conftest import FakeClock


@pytest.fixture
def redis_client():
    return MagicMock()


@pytest.fixture
def redis_store(redis_client):
    return RedisRecordStore(redis_client, key_prefix="ebike:")


class TestRedisRecordStore:
    """Tests for RedisRecordStore."""

    def test_key_format(self, redis_store):
        """Documents live under ebike:{user_id}."""
        assert redis_store.key_for("1") == "ebike:1"

    def test_get_missing_returns_none(self, redis_store, redis_client):
        """A missing key is not an error."""
        redis_client.get.return_value = None

        assert redis_store.get("1") is None
        redis_client.get.assert_called_once_with("ebike:1")

    def test_get_decodes_json(self, redis_store, redis_client):
        """Stored JSON is decoded into a dict."""
        redis_client.get.return_value = json.dumps({"currentMileage": 12})

        assert redis_store.get("1") == {"currentMileage": 12}

    def test_get_invalid_json_raises_storage_error(self, redis_store, redis_client):
        """Corrupt stored data is reported, not returned."""
        redis_client.get.return_value = "{not json"

        with pytest.raises(StorageError) as exc_info:
            redis_store.get("1")

        assert exc_info.value.operation == "get"
        assert exc_info.value.key == "ebike:1"

    def test_get_non_object_raises_storage_error(self, redis_store, redis_client):
        """A stored JSON value that is not an object is rejected."""
        redis_client.get.return_value = "[1, 2]"

        with pytest.raises(StorageError):
            redis_store.get("1")

    def test_get_connection_error_raises_storage_error(self, redis_store, redis_client):
        """Redis errors on read become StorageError."""
        redis_client.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(StorageError) as exc_info:
            redis_store.get("1")

        assert "connection refused" in str(exc_info.value)

    def test_put_uses_setex_with_ttl(self, redis_store, redis_client):
        """Writes go through SETEX so the TTL is refreshed."""
        document = {"currentMileage": 3, "dailyMileage": {"2024-01-01": 3}}

        redis_store.put("1", document, 15552000)

        redis_client.setex.assert_called_once()
        key, ttl, payload = redis_client.setex.call_args[0]
        assert key == "ebike:1"
        assert ttl == 15552000
        assert json.loads(payload) == document

    def test_put_timeout_raises_storage_error(self, redis_store, redis_client):
        """Redis errors on write become StorageError."""
        redis_client.setex.side_effect = RedisTimeoutError("timed out")

        with pytest.raises(StorageError) as exc_info:
            redis_store.put("1", {"currentMileage": 1}, 60)

        assert exc_info.value.operation == "put"

    def test_put_unserializable_document(self, redis_store, redis_client):
        """Documents that cannot be JSON encoded are rejected before Redis is called."""
        with pytest.raises(StorageError):
            redis_store.put("1", {"bad": object()}, 60)

        redis_client.setex.assert_not_called()

    def test_ping(self, redis_store, redis_client):
        """ping reports connectivity without raising."""
        redis_client.ping.return_value = True
        assert redis_store.ping() is True

        redis_client.ping.side_effect = RedisConnectionError("down")
        assert redis_store.ping() is False

    def test_from_url_decodes_responses(self):
        """from_url builds a client that returns str values."""
        with patch("ebike_tracker.services.record_store.Redis") as mock_redis:
            store = RedisRecordStore.from_url("redis://localhost:6379/0", key_prefix="bike:")

        mock_redis.from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)
        assert store.key_for("7") == "bike:7"


class TestMemoryRecordStore:
    """Tests for MemoryRecordStore."""

    def test_round_trip(self):
        """A stored document can be read back."""
        store = MemoryRecordStore()
        store.put("1", {"currentMileage": 4}, 60)

        assert store.get("1") == {"currentMileage": 4}

    def test_returns_copies(self):
        """Callers cannot mutate stored state through returned documents."""
        store = MemoryRecordStore()
        document = {"dailyMileage": {"2024-01-01": 1}}
        store.put("1", document, 60)

        document["dailyMileage"]["2024-01-01"] = 99
        store.get("1")["dailyMileage"]["2024-01-01"] = 50

        assert store.get("1") == {"dailyMileage": {"2024-01-01": 1}}

    def test_expires_after_ttl(self):
        """Documents disappear once the TTL has passed."""
        clock = FakeClock()
        store = MemoryRecordStore(clock=clock)
        store.put("1", {"currentMileage": 4}, 60)

        clock.advance(seconds=59)
        assert store.get("1") is not None

        clock.advance(seconds=1)
        assert store.get("1") is None

    def test_write_refreshes_ttl(self):
        """Each write starts a new TTL."""
        clock = FakeClock()
        store = MemoryRecordStore(clock=clock)
        store.put("1", {"currentMileage": 1}, 60)

        clock.advance(seconds=50)
        store.put("1", {"currentMileage": 2}, 60)
        clock.advance(seconds=50)

        assert store.get("1") == {"currentMileage": 2}

    def test_users_are_isolated(self):
        """Each user has their own key."""
        store = MemoryRecordStore()
        store.put("1", {"currentMileage": 1}, 60)

        assert store.get("2") is None

    def test_clear(self):
        store = MemoryRecordStore()
        store.put("1", {"currentMileage": 1}, 60)
        store.clear()

        assert store.get("1") is None


class TestGetRecordStore:
    """Tests for store selection."""

    def test_memory_url_gives_memory_store(self):
        store = get_record_store({"REDIS_URL": "memory://", "KEY_PREFIX": "ebike:"})

        assert isinstance(store, MemoryRecordStore)

    def test_redis_url_gives_redis_store(self):
        with patch("ebike_tracker.services.record_store.Redis") as mock_redis:
            store = get_record_store({"REDIS_URL": "rediss://user:pw@example.com:6379", "KEY_PREFIX": "ebike:"})

        assert isinstance(store, RedisRecordStore)
        assert mock_redis.from_url.call_args[0][0] == "rediss://user:pw@example.com:6379"
