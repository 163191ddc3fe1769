"""Distributed rate limiting with GCRA over a shared atomic store."""

from gcra.exceptions import RateLimiterError, StoreUpdateFailure
from gcra.services.rate_limiter import (
    GCRARateLimiter,
    RateLimitInfo,
    get_rate_limiter,
    reset_rate_limiter,
)
from gcra.stores import (
    InMemoryStore,
    RateLimitStore,
    RedisStore,
    get_store,
    reset_store,
)

__all__ = [
    "GCRARateLimiter",
    "RateLimitInfo",
    "get_rate_limiter",
    "reset_rate_limiter",
    "RateLimitStore",
    "InMemoryStore",
    "RedisStore",
    "get_store",
    "reset_store",
    "RateLimiterError",
    "StoreUpdateFailure",
]
