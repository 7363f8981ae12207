import os

import pytest
import redis


@pytest.fixture
def redis_client():
    """
    Yields a clean Redis client for integration testing.
    Skips when no Redis server is reachable.
    """
    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", 6379))
    # Separate database so a developer's data is never flushed
    db = int(os.getenv("REDIS_TEST_DB", 15))

    client = redis.Redis(host=host, port=port, db=db, decode_responses=False,
                         socket_connect_timeout=1)

    try:
        client.ping()
    except redis.ConnectionError:
        pytest.skip("Redis service not available. Skipping integration tests.")

    client.flushdb()

    yield client

    client.flushdb()
    client.close()
