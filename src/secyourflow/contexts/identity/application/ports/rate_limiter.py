from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """
    RateLimitDecision: result of counting one attempt against a bucket.

    Allowed decisions carry `remaining`; rejected ones carry `retry_after_seconds >= 1`.
    """

    allowed: bool
    remaining: int = 0
    retry_after_seconds: int = 0

    def __post_init__(self) -> None:
        if self.remaining < 0:
            raise ValueError("RateLimitDecision.remaining must be >= 0")
        if not self.allowed and self.retry_after_seconds < 1:
            raise ValueError("RateLimitDecision.retry_after_seconds must be >= 1 when rejected")


class RateLimiter(Protocol):
    """
    RateLimiter: fixed-window attempt counter keyed by operation and identity.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/rate_limit/in_memory_rate_limiter.py
      - src/secyourflow/contexts/identity/adapters/outbound/rate_limit/redis_rate_limiter.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def consume(self, *, key: str, limit: int, window_ms: int) -> RateLimitDecision:
        ...

    def reset(self, *, key: str) -> None:
        ...
