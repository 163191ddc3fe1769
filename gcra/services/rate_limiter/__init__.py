"""GCRA rate limiting service.

The limiter tracks one theoretical arrival time per key in a shared store
and commits updates with compare-and-set, so any number of processes can
enforce one limit together.
"""

from .models import RateLimitInfo
from .service import (
    GCRARateLimiter,
    get_rate_limiter,
    reset_rate_limiter,
)

__all__ = [
    "RateLimitInfo",
    "GCRARateLimiter",
    "get_rate_limiter",
    "reset_rate_limiter",
]
