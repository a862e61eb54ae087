from .in_memory_rate_limiter import PURGE_THRESHOLD, InMemoryRateLimiter
from .redis_rate_limiter import RedisRateLimiter

__all__ = [
    "InMemoryRateLimiter",
    "PURGE_THRESHOLD",
    "RedisRateLimiter",
]
