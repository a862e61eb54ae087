from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from secyourflow.contexts.identity.application.ports.rate_limiter import (
    RateLimitDecision,
    RateLimiter,
)

PURGE_THRESHOLD = 512


@dataclass(slots=True)
class _Bucket:
    count: int
    reset_at_ms: int


def _system_now_ms() -> int:
    return time.time_ns() // 1_000_000


class InMemoryRateLimiter(RateLimiter):
    """
    InMemoryRateLimiter: per-process fixed-window limiter.

    Expired buckets are purged lazily once the bucket map reaches `PURGE_THRESHOLD`
    entries. Counters are not shared between processes; use `RedisRateLimiter` for that.

    Related:
      - src/secyourflow/contexts/identity/application/ports/rate_limiter.py
      - src/secyourflow/contexts/identity/adapters/outbound/rate_limit/redis_rate_limiter.py
    """

    def __init__(self, *, now_ms: Callable[[], int] | None = None) -> None:
        self._now_ms = now_ms if now_ms is not None else _system_now_ms
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def consume(self, *, key: str, limit: int, window_ms: int) -> RateLimitDecision:
        """
        Count one attempt for `key` in the current window.

        Args:
            key: Bucket key.
            limit: Maximum attempts per window.
            window_ms: Window length in milliseconds.
        Returns:
            RateLimitDecision: Allowed with remaining attempts, or rejected with retry hint.
        Raises:
            ValueError: If limit or window are not positive.
        Side Effects:
            Mutates the in-process bucket map.
        """
        validate_rate_limit(limit=limit, window_ms=window_ms)
        now_ms = self._now_ms()
        with self._lock:
            if len(self._buckets) >= PURGE_THRESHOLD:
                self._purge_expired(now_ms=now_ms)

            bucket = self._buckets.get(key)
            if bucket is None or bucket.reset_at_ms <= now_ms:
                bucket = _Bucket(count=0, reset_at_ms=now_ms + window_ms)
                self._buckets[key] = bucket

            if bucket.count >= limit:
                return RateLimitDecision(
                    allowed=False,
                    retry_after_seconds=max(1, math.ceil((bucket.reset_at_ms - now_ms) / 1000)),
                )
            bucket.count += 1
            return RateLimitDecision(allowed=True, remaining=limit - bucket.count)

    def reset(self, *, key: str) -> None:
        with self._lock:
            self._buckets.pop(key, None)

    def _purge_expired(self, *, now_ms: int) -> None:
        expired = [key for key, bucket in self._buckets.items() if bucket.reset_at_ms <= now_ms]
        for key in expired:
            del self._buckets[key]


def validate_rate_limit(*, limit: int, window_ms: int) -> None:
    if limit <= 0:
        raise ValueError("rate limit must be > 0")
    if window_ms <= 0:
        raise ValueError("rate limit window_ms must be > 0")
