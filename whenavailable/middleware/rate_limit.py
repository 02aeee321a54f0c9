# whenavailable/middleware/rate_limit.py
"""
Redis-backed rate limiting.

Counters live in Redis (rl:{scope}:{key}) so limits hold across processes and
restarts. A window starts with the first request and lasts `window` seconds.

Limits:
- slot creation: settings.rate_limit_max_links_per_hour per client IP per hour
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Depends, Request, Response
from redis import Redis

from ..config import settings
from ..errors import RateLimitExceeded
from ..redis_client import get_redis

logger = logging.getLogger(__name__)

REDIS_RATE_LIMIT_PREFIX = "rl"
LINK_CREATION_WINDOW = 3600


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int  # unix ms


def get_client_ip(request: Request) -> str:
    """Client IP behind proxies/load balancers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def check_rate_limit(
    redis: Redis,
    scope: str,
    key_value: str,
    limit: int,
    window: int,
) -> RateLimitResult:
    """
    Count one request and report whether it is within the limit.

    limit=0 means disabled. Redis failures fail open.
    """
    now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    if limit <= 0:
        return RateLimitResult(True, 0, now_ms)

    key = f"{REDIS_RATE_LIMIT_PREFIX}:{scope}:{key_value}"
    try:
        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()

        if ttl < 0:
            redis.expire(key, window)
            ttl = window

        reset_at = now_ms + ttl * 1000
        return RateLimitResult(count <= limit, max(0, limit - count), reset_at)

    except Exception as e:
        logger.error(f"Rate limit check failed: {e}")
        return RateLimitResult(True, limit, now_ms + window * 1000)  # fail open


def limit_slot_creation(
    request: Request,
    response: Response,
    redis: Redis = Depends(get_redis),
) -> RateLimitResult:
    """FastAPI dependency guarding POST /slots."""
    ip = get_client_ip(request)
    result = check_rate_limit(
        redis,
        "create",
        ip,
        settings.rate_limit_max_links_per_hour,
        LINK_CREATION_WINDOW,
    )

    if not result.allowed:
        logger.warning(f"Slot creation rate limit exceeded for {ip}")
        raise RateLimitExceeded(
            f"Rate limit exceeded. You can create up to "
            f"{settings.rate_limit_max_links_per_hour} links per hour.",
            resetAt=result.reset_at,
        )

    reset_iso = datetime.fromtimestamp(result.reset_at / 1000, tz=timezone.utc).isoformat()
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = reset_iso
    return result
