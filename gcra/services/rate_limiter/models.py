"""Data models for rate limit decisions."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RateLimitInfo:
    """Outcome details of one rate limit decision.

    Attributes:
        limit: Maximum burst size (max_burst + 1); constant per limiter
        remaining: Unit-quantity requests still admissible right now
        reset_after: Seconds until the bucket is completely empty again
        retry_after: Seconds until the rejected request could succeed. None
            when the request was admitted, and also when it was rejected
            because its quantity can never fit in the burst.
    """
    limit: int
    remaining: int
    reset_after: float
    retry_after: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_after": self.reset_after,
            "retry_after": self.retry_after,
        }
