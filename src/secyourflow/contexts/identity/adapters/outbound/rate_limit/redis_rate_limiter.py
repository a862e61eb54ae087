from __future__ import annotations

import logging
import math
from typing import Any

from redis import Redis

from secyourflow.contexts.identity.adapters.outbound.rate_limit.in_memory_rate_limiter import (
    validate_rate_limit,
)
from secyourflow.contexts.identity.application.ports.rate_limiter import (
    RateLimitDecision,
    RateLimiter,
)

log = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "secyourflow:ratelimit:"


class RedisRateLimiter(RateLimiter):
    """
    RedisRateLimiter: fixed-window limiter shared by all API processes.

    Each bucket is one integer key: `INCR` counts the attempt and the first increment sets
    the window with `PEXPIRE`. Rejected attempts still increment, which keeps the window
    closed until it expires.

    Related:
      - src/secyourflow/contexts/identity/application/ports/rate_limiter.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(
        self,
        *,
        redis_url: str | None = None,
        redis_client: Any | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        """
        Initialize limiter with a Redis URL or a prebuilt client.

        Args:
            redis_url: Redis connection URL, used when no client is passed.
            redis_client: Optional prebuilt Redis client (tests/custom wiring).
            key_prefix: Prefix applied to every bucket key.
        Returns:
            None.
        Raises:
            ValueError: If neither a client nor a non-empty URL is provided.
        Side Effects:
            Creates a Redis client with connection pool internals when only a URL is given.
        """
        if redis_client is None:
            normalized_url = (redis_url or "").strip()
            if not normalized_url:
                raise ValueError("RedisRateLimiter requires redis_url or redis_client")
            redis_client = Redis.from_url(normalized_url, decode_responses=True)
        self._redis = redis_client
        self._key_prefix = key_prefix

    def consume(self, *, key: str, limit: int, window_ms: int) -> RateLimitDecision:
        validate_rate_limit(limit=limit, window_ms=window_ms)
        redis_key = f"{self._key_prefix}{key}"

        count = int(self._redis.incr(redis_key))
        if count == 1:
            self._redis.pexpire(redis_key, window_ms)
            ttl_ms = window_ms
        else:
            ttl_ms = int(self._redis.pttl(redis_key))
            if ttl_ms < 0:
                # key lost its expiry; start a fresh window
                self._redis.pexpire(redis_key, window_ms)
                ttl_ms = window_ms

        if count > limit:
            log.info("rate limit exceeded for %s", redis_key)
            return RateLimitDecision(
                allowed=False,
                retry_after_seconds=max(1, math.ceil(ttl_ms / 1000)),
            )
        return RateLimitDecision(allowed=True, remaining=limit - count)

    def reset(self, *, key: str) -> None:
        self._redis.delete(f"{self._key_prefix}{key}")
