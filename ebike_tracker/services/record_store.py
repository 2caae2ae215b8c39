"""
Record store adapters.

Persists one JSON document per user under ``{prefix}{user_id}`` with a
sliding expiration that is refreshed on every write.

- RedisRecordStore: production store (GET / SETEX)
- MemoryRecordStore: in-process store for development and tests
"""

import json
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from redis import Redis
from redis.exceptions import RedisError

from ebike_tracker.config import Config
from ebike_tracker.exceptions import StorageError
from ebike_tracker.utils.timezone import utc_now

logger = logging.getLogger(__name__)

MEMORY_URL_SCHEME = "memory://"


class RecordStore:
    """Interface for per-user document storage."""

    def __init__(self, key_prefix: str = "ebike:"):
        self.key_prefix = key_prefix

    def key_for(self, user_id: str) -> str:
        """Storage key for a user's document."""
        return f"{self.key_prefix}{user_id}"

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the last persisted document, or None if there is none."""
        raise NotImplementedError

    def put(self, user_id: str, document: Dict[str, Any], ttl_seconds: int) -> None:
        """Persist a document, replacing the previous one and resetting its TTL."""
        raise NotImplementedError


class RedisRecordStore(RecordStore):
    """Record store backed by Redis string keys holding JSON."""

    def __init__(self, client: Redis, key_prefix: str = "ebike:"):
        super().__init__(key_prefix)
        self.client = client

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "ebike:", **kwargs) -> "RedisRecordStore":
        """
        Create a store from a Redis URL.

        Connections are opened lazily on first command.

        Args:
            url: redis:// or rediss:// URL
            key_prefix: Prefix for document keys
            **kwargs: Extra options for Redis.from_url (timeouts, retries)
        """
        client = Redis.from_url(url, decode_responses=True, **kwargs)
        return cls(client, key_prefix=key_prefix)

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        key = self.key_for(user_id)
        try:
            raw = self.client.get(key)
        except RedisError as e:
            logger.error(f"Redis GET failed for {key}: {e}")
            raise StorageError(f"Failed to read document: {e}", operation="get", key=key) from e

        if raw is None:
            return None

        try:
            document = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Stored document for {key} is not valid JSON: {e}")
            raise StorageError("Stored document is not valid JSON", operation="get", key=key) from e

        if not isinstance(document, dict):
            raise StorageError("Stored document is not a JSON object", operation="get", key=key)
        return document

    def put(self, user_id: str, document: Dict[str, Any], ttl_seconds: int) -> None:
        key = self.key_for(user_id)
        try:
            payload = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document is not JSON serializable: {e}", operation="put", key=key) from e

        try:
            self.client.setex(key, ttl_seconds, payload)
        except RedisError as e:
            logger.error(f"Redis SETEX failed for {key}: {e}")
            raise StorageError(f"Failed to write document: {e}", operation="put", key=key) from e

    def ping(self) -> bool:
        """Check the Redis connection."""
        try:
            return bool(self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


class MemoryRecordStore(RecordStore):
    """
    In-process record store.

    Documents are kept as JSON strings so callers never share mutable
    state with the store, matching what a round trip through Redis gives.
    Expiry is evaluated lazily against an injectable clock.
    """

    def __init__(self, key_prefix: str = "ebike:", clock: Callable[[], datetime] = utc_now):
        super().__init__(key_prefix)
        self.clock = clock
        self._records: Dict[str, Tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        key = self.key_for(user_id)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            payload, expires_at = record
            if self.clock() >= expires_at:
                del self._records[key]
                return None
        return json.loads(payload)

    def put(self, user_id: str, document: Dict[str, Any], ttl_seconds: int) -> None:
        key = self.key_for(user_id)
        try:
            payload = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document is not JSON serializable: {e}", operation="put", key=key) from e

        expires_at = self.clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._records[key] = (payload, expires_at)

    def ping(self) -> bool:
        return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


def get_record_store(config=Config, clock: Callable[[], datetime] = utc_now) -> RecordStore:
    """
    Build the record store named by the configuration.

    Args:
        config: Config class or Flask config mapping
        clock: Time source for in-memory expiry

    Returns:
        MemoryRecordStore for memory:// URLs, otherwise RedisRecordStore
    """
    if isinstance(config, dict):
        url = config.get('REDIS_URL', Config.REDIS_URL)
        prefix = config.get('KEY_PREFIX', Config.KEY_PREFIX)
    else:
        url = config.REDIS_URL
        prefix = config.KEY_PREFIX

    if url.startswith(MEMORY_URL_SCHEME):
        logger.warning("Using in-memory record store; documents are lost on restart")
        return MemoryRecordStore(key_prefix=prefix, clock=clock)

    logger.info("Using Redis record store")
    return RedisRecordStore.from_url(url, key_prefix=prefix, socket_timeout=5, health_check_interval=30)
