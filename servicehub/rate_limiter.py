"""
Redis rate limiting for public booking requests

Fixed-window counters (INCR + EXPIRE). The limiter fails open: when Redis is
not configured or unreachable every request is allowed and a warning logged.
"""

import logging
import os
import time
from typing import Optional

import redis
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
_last_connect_failure = 0.0

# Seconds to wait before retrying a failed Redis connection
RECONNECT_INTERVAL = 30


def redis_configured() -> bool:
    return bool(os.getenv("REDIS_URL") or os.getenv("REDIS_HOST"))


def get_redis_client() -> redis.Redis:
    """
    Get or create the Redis client
    Supports a REDIS_URL or individual REDIS_HOST/REDIS_PORT/... settings
    """
    global redis_client

    if redis_client is None:
        logger.info("🔄 Initializing Redis connection for rate limiting...")
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        else:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD", None),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        client.ping()
        redis_client = client
        logger.info("✅ Redis connected for rate limiting")

    return redis_client


def _client_or_none() -> Optional[redis.Redis]:
    global _last_connect_failure
    if not redis_configured():
        return None
    if redis_client is None and time.time() - _last_connect_failure < RECONNECT_INTERVAL:
        return None
    try:
        return get_redis_client()
    except redis.RedisError as e:
        _last_connect_failure = time.time()
        logger.warning(f"⚠️ Redis unavailable, rate limiting in fail-open mode: {e}")
        return None


def hit(key: str, window_seconds: int) -> Optional[tuple[int, int]]:
    """Count a request; returns (count, ttl) or None when Redis is unavailable"""
    client = _client_or_none()
    if client is None:
        return None
    try:
        count = int(client.incr(key))
        if count == 1:
            client.expire(key, window_seconds)
        ttl = client.ttl(key)
        return count, max(int(ttl), 0)
    except redis.RedisError as e:
        logger.warning(f"⚠️ Rate limit check failed, allowing request: {e}")
        return None


def check_rate_limit(request: Request, key: str, max_requests: int, window_seconds: int) -> None:
    """
    Raise 429 when `key` exceeded `max_requests` in the current window

    Args:
        request: FastAPI request (rate limit state is attached to it)
        key: Counter key, e.g. "booking:<customer email>"
        max_requests: Requests allowed per window
        window_seconds: Window length
    """
    result = hit(f"rate_limit:{key}", window_seconds)
    if result is None:
        return

    count, ttl = result
    request.state.rate_limit_remaining = max(max_requests - count, 0)
    if count > max_requests:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {count}/{max_requests} requests used")
        raise HTTPException(
            status_code=429,
            detail={
                "message": f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds.",
                "retry_after": ttl,
            },
            headers={"Retry-After": str(ttl)},
        )
