"""
Redis Configuration

Configures Redis connection settings and provides factory functions
for creating Redis clients and repositories.
"""

import logging
import os
from typing import Optional

import redis

from quickdrop.infrastructure.redis_repository import RedisConnectionManager, RedisRepository

logger = logging.getLogger(__name__)


class RedisConfig:
    """Redis configuration settings."""

    def __init__(self):
        self.host = os.getenv("REDIS_HOST", "localhost")
        self.port = int(os.getenv("REDIS_PORT", 6379))
        self.db = int(os.getenv("REDIS_DB", 0))
        self.password = os.getenv("REDIS_PASSWORD")
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", 20))
        self.key_prefix = os.getenv("REDIS_KEY_PREFIX", "quickdrop")

        # redis://[:password@]host:port/db takes precedence over the parts
        self.url = os.getenv("REDIS_URL")
        if self.url:
            params = redis.connection.parse_url(self.url)
            self.host = params.get("host", self.host)
            self.port = params.get("port", self.port)
            self.db = params.get("db", self.db)
            self.password = params.get("password", self.password)


_redis_manager: Optional[RedisConnectionManager] = None
_key_prefix = "quickdrop"


def init_redis(config: Optional[RedisConfig] = None) -> RedisConnectionManager:
    """
    Initialize the process-wide Redis connection manager.

    Args:
        config: Redis configuration, uses default if None

    Returns:
        RedisConnectionManager instance
    """
    global _redis_manager, _key_prefix

    if config is None:
        config = RedisConfig()

    connection_kwargs = {
        "host": config.host,
        "port": config.port,
        "db": config.db,
        "max_connections": config.max_connections,
    }
    if config.password:
        connection_kwargs["password"] = config.password

    _redis_manager = RedisConnectionManager(**connection_kwargs)
    _key_prefix = config.key_prefix
    logger.info(f"Redis configured at {config.host}:{config.port}/{config.db}")
    return _redis_manager


def get_redis_client() -> redis.Redis:
    """
    Get Redis client instance.

    Raises:
        RuntimeError: If Redis is not initialized
    """
    if _redis_manager is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_manager.client


def get_redis_repository(key_prefix: Optional[str] = None) -> RedisRepository:
    """
    Get Redis repository with a key prefix.

    Args:
        key_prefix: Prefix for all keys, defaults to REDIS_KEY_PREFIX

    Returns:
        RedisRepository instance
    """
    prefix = _key_prefix if key_prefix is None else key_prefix
    return RedisRepository(get_redis_client(), prefix)


def redis_health_check() -> bool:
    """True if Redis is initialized and answers PING."""
    if _redis_manager is None:
        return False
    return _redis_manager.health_check()


def close_redis() -> None:
    """Disconnect the connection pool and forget the manager."""
    global _redis_manager
    if _redis_manager is not None:
        _redis_manager.close()
        _redis_manager = None
