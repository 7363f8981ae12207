"""
Redis Repository Base Class

Provides JSON storage with atomic create-if-absent and optimistic
read-modify-write transactions on top of redis-py.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from quickdrop.domain.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

JsonMutator = Callable[[Optional[Dict[str, Any]]], Optional[Dict[str, Any]]]


class RedisRepository:
    """Base Redis repository with atomic JSON operations."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        """Create a prefixed key for Redis storage."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    @staticmethod
    def _unavailable(action: str, key: str, error: Exception) -> StorageUnavailableError:
        logger.error(f"Redis error during {action} for key {key}: {error}")
        return StorageUnavailableError(f"Redis {action} failed: {error}", error)

    def set_json_if_absent(self, key: str, data: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """
        Atomically create a JSON value only if the key does not exist.

        Args:
            key: Redis key
            data: Dictionary to store as JSON
            ttl: Time to live in seconds

        Returns:
            True if created, False if the key already existed

        Raises:
            StorageUnavailableError: On connection failure
        """
        try:
            created = self.redis.set(self._make_key(key), json.dumps(data), nx=True, ex=ttl)
            return bool(created)
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("set", key, e) from e

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get JSON data from Redis.

        Returns:
            Dictionary if found, None otherwise

        Raises:
            StorageUnavailableError: On connection failure
        """
        try:
            data = self.redis.get(self._make_key(key))
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("get", key, e) from e
        return self._decode(data)

    @staticmethod
    def _decode(data) -> Optional[Dict[str, Any]]:
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)

    def update_json_atomic(self, key: str, mutator: JsonMutator
                           ) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """
        Optimistic read-modify-write of a JSON value.

        Runs inside WATCH/MULTI/EXEC; redis-py re-runs the callback when a
        concurrent writer touches the key, so mutator must be pure. The key's
        TTL is preserved.

        Args:
            key: Redis key
            mutator: Function from current value (or None) to replacement (or None)

        Returns:
            Tuple of (value before, value after) from the committed attempt

        Raises:
            StorageUnavailableError: On connection failure
        """
        redis_key = self._make_key(key)

        def _transaction(pipe) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
            before = self._decode(pipe.get(redis_key))
            after = mutator(before)
            pipe.multi()
            if after is not None:
                pipe.set(redis_key, json.dumps(after), keepttl=True)
                return before, after
            return before, before

        try:
            return self.redis.transaction(_transaction, redis_key, value_from_callable=True)
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("transaction", key, e) from e

    def delete(self, key: str) -> bool:
        """
        Delete a key from Redis.

        Returns:
            True if key was deleted, False if it did not exist
        """
        try:
            return self.redis.delete(self._make_key(key)) > 0
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("delete", key, e) from e

    def exists(self, key: str) -> bool:
        """Check if a key exists in Redis."""
        try:
            return self.redis.exists(self._make_key(key)) > 0
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("exists", key, e) from e

    def get_keys_by_pattern(self, pattern: str) -> List[str]:
        """
        Get all keys matching a pattern.

        Args:
            pattern: Redis key pattern (supports wildcards)

        Returns:
            List of matching keys (without prefix)
        """
        try:
            keys = list(self.redis.scan_iter(match=self._make_key(pattern), count=500))
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("scan", pattern, e) from e

        prefix_len = len(self.key_prefix) + 1 if self.key_prefix else 0
        result = []
        for key in keys:
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            result.append(key[prefix_len:])
        return result

    def get_many_json(self, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        """Fetch several JSON values in one round trip."""
        if not keys:
            return []
        try:
            values = self.redis.mget([self._make_key(k) for k in keys])
        except (RedisConnectionError, RedisTimeoutError, RedisError) as e:
            raise self._unavailable("mget", ",".join(keys[:3]), e) from e
        return [self._decode(v) for v in values]


class RedisConnectionManager:
    """Manages Redis connection with connection pooling."""

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None, max_connections: int = 20,
                 socket_timeout: float = 5.0):
        self.connection_pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=True,
            socket_keepalive=True,
        )
        self._client = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance with connection pooling."""
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return bool(self.client.ping())
        except (RedisConnectionError, RedisTimeoutError):
            return False

    def close(self):
        """Close the connection pool."""
        if self.connection_pool:
            self.connection_pool.disconnect()
