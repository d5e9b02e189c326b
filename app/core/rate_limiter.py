"""
Rate Limiter - Protection contre les abus.

Utilise Redis pour un rate limiting distribué.
Limites:
- orders: ORDER_RATE_LIMIT_MAX / ORDER_RATE_LIMIT_WINDOW par utilisateur (double-submit)
"""
import time
from typing import Optional

from fastapi import HTTPException
import redis

from app.core.config import REDIS_URL, ORDER_RATE_LIMIT_MAX, ORDER_RATE_LIMIT_WINDOW
from app.core.logging import get_logger

logger = get_logger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(REDIS_URL, decode_responses=True)
    return _redis_client


class RateLimitExceeded(HTTPException):
    """Exception for rate limit exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            status_code=429,
            detail=f"Rate limit exceeded. Retry after {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )


def check_rate_limit(
    key: str,
    max_requests: int,
    window_seconds: int,
) -> tuple[bool, int]:
    """
    Check if rate limit is exceeded using sliding window.

    Args:
        key: Unique key for this limit (e.g., "orders:<user_id>")
        max_requests: Maximum requests allowed in window
        window_seconds: Time window in seconds

    Returns:
        Tuple of (is_allowed, remaining_requests)
    """
    redis_client = get_redis()
    now = time.time()
    window_start = now - window_seconds

    redis_key = f"ratelimit:{key}"

    pipe = redis_client.pipeline()
    pipe.zremrangebyscore(redis_key, 0, window_start)
    pipe.zcard(redis_key)
    pipe.zadd(redis_key, {str(now): now})
    pipe.expire(redis_key, window_seconds + 1)

    results = pipe.execute()
    current_count = results[1]

    remaining = max(0, max_requests - current_count - 1)
    is_allowed = current_count < max_requests

    return is_allowed, remaining


def rate_limit_orders(user_id: str) -> None:
    """Rate limit for order placement."""
    allowed, _ = check_rate_limit(
        key=f"orders:{user_id}",
        max_requests=ORDER_RATE_LIMIT_MAX,
        window_seconds=ORDER_RATE_LIMIT_WINDOW,
    )

    if not allowed:
        logger.warning(
            "Rate limit exceeded on orders",
            user_id=user_id,
        )
        raise RateLimitExceeded(retry_after=ORDER_RATE_LIMIT_WINDOW)
