"""
Redis Connection Pool Module
============================
Centralized async Redis connection pool used by the realtime layer.

The pool is created lazily on first use. When ``REDIS_URL`` is not
configured, ``get_redis`` returns ``None`` and callers run in mock mode.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import (
    BusyLoadingError,
    ConnectionError,
    TimeoutError,
)

from app.core.config import settings

log = logging.getLogger(__name__)

_redis_pool: Optional[redis.ConnectionPool] = None

# Pool configuration constants
POOL_MAX_CONNECTIONS = 50       # Max concurrent connections
SOCKET_TIMEOUT = 5.0            # Timeout for read/write operations (seconds)
SOCKET_CONNECT_TIMEOUT = 5.0    # Timeout for establishing connection (seconds)
HEALTH_CHECK_INTERVAL = 30      # Seconds between connection health checks
RETRY_ATTEMPTS = 3              # Number of retry attempts on transient errors


def _create_pool() -> redis.ConnectionPool:
    return redis.ConnectionPool.from_url(
        settings.REDIS_URL,
        max_connections=POOL_MAX_CONNECTIONS,
        socket_timeout=SOCKET_TIMEOUT,
        socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
        health_check_interval=HEALTH_CHECK_INTERVAL,
        decode_responses=True,
    )


def _create_retry() -> Retry:
    """
    Retry configuration for transient Redis errors: exponential backoff
    capped at 0.5s for connection drops, timeouts and BusyLoadingError.
    """
    return Retry(
        retries=RETRY_ATTEMPTS,
        backoff=ExponentialBackoff(cap=0.5, base=0.1),
        supported_errors=(ConnectionError, TimeoutError, BusyLoadingError),
    )


async def get_redis() -> Optional[redis.Redis]:
    """
    Returns a Redis client backed by the shared connection pool, or ``None``
    when Redis is not configured.
    """
    global _redis_pool
    if not settings.REDIS_URL:
        return None
    if _redis_pool is None:
        _redis_pool = _create_pool()
        log.info(
            "Redis connection pool initialized "
            f"(max_connections={POOL_MAX_CONNECTIONS}, "
            f"health_check_interval={HEALTH_CHECK_INTERVAL}s)"
        )
    
    return redis.Redis(
        connection_pool=_redis_pool,
        retry=_create_retry(),
        retry_on_error=[ConnectionError, TimeoutError, BusyLoadingError],
    )


async def close_redis():
    """Shuts down the pool. Called from the application lifespan."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None
        log.info("Redis connection pool closed")
