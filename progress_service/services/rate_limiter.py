"""Token-bucket rate limiting for the progress write endpoints.

A bucket holds up to `capacity` tokens and refills at `refill_rate`
tokens per second; each request spends one.  Bursts up to capacity pass
(a lesson player fires several updates when a child scrubs through a
video), the sustained rate is bounded by the refill rate.

The in-memory limiter keeps at most `max_keys` buckets.  When a new key
would exceed that, the bucket touched longest ago is evicted; an evicted
client simply starts again with a full bucket.  The per-process map can
therefore never grow without bound.  Multi-instance deployments set
REDIS_URL so every instance shares one set of buckets.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from progress_service.core.metrics import RATE_LIMIT_EVICTIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    retry_after: float  # seconds until the next token, 0 when allowed


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    capacity: int = 60
    refill_rate: float = 1.0  # tokens per second


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


class InMemoryRateLimiter:
    def __init__(self, max_keys: int = 10_000) -> None:
        if max_keys < 1:
            raise ValueError("max_keys must be >= 1")
        self._max_keys = max_keys
        # key -> (tokens, last_refill); order = least recently touched first
        self._buckets: OrderedDict[str, tuple[float, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._buckets)

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()

        if key in self._buckets:
            tokens, last_refill = self._buckets.pop(key)
            tokens = min(config.capacity, tokens + (now - last_refill) * config.refill_rate)
        else:
            self._evict_for_new_key()
            tokens = float(config.capacity)

        if tokens >= 1:
            tokens -= 1
            self._buckets[key] = (tokens, now)
            return RateLimitResult(
                allowed=True, remaining=int(tokens), limit=config.capacity, retry_after=0
            )

        self._buckets[key] = (tokens, now)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)

    def clear(self) -> None:
        self._buckets.clear()

    def _evict_for_new_key(self) -> None:
        while len(self._buckets) >= self._max_keys:
            evicted, _ = self._buckets.popitem(last=False)
            RATE_LIMIT_EVICTIONS.inc()
            logger.debug("Evicted rate-limit bucket key=%s", evicted)


class RedisRateLimiter:
    """Shared token bucket.  The refill-and-spend runs as one Lua script so
    concurrent requests from the same client cannot both spend the last
    token.  Idle buckets expire on their own (EXPIRE), so Redis memory is
    bounded by the set of recently active clients."""

    _LUA_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / refill_rate) + 60

    local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
    local tokens = tonumber(bucket[1])
    local last_refill = tonumber(bucket[2])

    if tokens == nil then
        tokens = capacity
    else
        tokens = math.min(capacity, tokens + (now - last_refill) * refill_rate)
    end

    local allowed = 0
    local retry_after_ms = 0
    if tokens >= 1 then
        tokens = tokens - 1
        allowed = 1
    else
        retry_after_ms = math.ceil((1 - tokens) / refill_rate * 1000)
    end

    redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
    redis.call('EXPIRE', key, ttl)
    return {allowed, math.floor(tokens), retry_after_ms}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        allowed, remaining, retry_after_ms = await self._script(
            keys=[f"ratelimit:{key}"],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=max(0, int(remaining)),
            limit=config.capacity,
            retry_after=retry_after_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"ratelimit:{key}")
