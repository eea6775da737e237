"""Rate limiting dependency for the progress write routes.

A dependency, not middleware, so reads and probes are never limited.
Buckets are keyed by the token subject when a bearer token is present,
else by client IP.
"""

from __future__ import annotations

import logging

import jwt
from fastapi import HTTPException, Request, status

from progress_service.core.config import SETTINGS
from progress_service.core.metrics import RATE_LIMIT_HITS
from progress_service.db.redis import redis_pool
from progress_service.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

rate_limiter: RateLimiter
if redis_pool is not None:
    rate_limiter = RedisRateLimiter(redis_pool)
else:
    rate_limiter = InMemoryRateLimiter(max_keys=SETTINGS.rate_limit_max_keys)

# A player reports progress every few seconds and bursts when scrubbing.
WRITE_LIMIT = RateLimitConfig(capacity=60, refill_rate=1.0)


def require_rate_limit(config: RateLimitConfig = WRITE_LIMIT):
    async def _check(request: Request) -> None:
        key = _build_key(request)
        result = await rate_limiter.check(key, config)
        if result.allowed:
            return

        RATE_LIMIT_HITS.labels(key_type=key.split(":", 1)[0]).inc()
        logger.warning("Rate limit exceeded key=%s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={
                "Retry-After": str(int(result.retry_after) + 1),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    return _check


def _build_key(request: Request) -> str:
    # Unverified decode: only the subject is needed for keying.  A forged
    # token just gets its own bucket; require_user rejects it anyway.
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = jwt.decode(auth_header[7:], options={"verify_signature": False})
        except jwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
