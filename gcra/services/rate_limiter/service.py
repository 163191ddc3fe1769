"""GCRA (Generic Cell Rate Algorithm) rate limiter.

The limiter stores a single theoretical arrival time (TAT) per key in a
shared store and decides admission from it. State changes are committed
with create-if-absent or compare-and-set, and a lost race re-reads the
store and recomputes, so every decision is based on a committed value.
The loop is bounded; running out of attempts raises StoreUpdateFailure.
"""

from typing import Any, Optional, Tuple

from gcra.core.logging import get_log_context, get_logger
from gcra.exceptions import StoreUpdateFailure
from gcra.stores.base import RateLimitStore

from .models import RateLimitInfo

logger = get_logger(__name__)

NANOS_PER_SECOND = 1_000_000_000


class GCRARateLimiter:
    """Rate limiter enforcing ``max_burst + 1`` units per burst, refilling
    one unit every ``rate_period`` seconds.

    The limiter is synchronous and holds no per-key state of its own; any
    number of instances, in any number of processes, may share a store.

    Example:
        >>> limiter = GCRARateLimiter(InMemoryStore(), rate_period=1.0, max_burst=4)
        >>> limited, info = limiter.limit("user:42", 1)
        >>> limited, info.remaining
        (False, 4)
    """

    MAX_ATTEMPTS = 10

    def __init__(self, store: RateLimitStore, rate_period: float, max_burst: int) -> None:
        """Initialize the limiter.

        Args:
            store: Shared store holding the per-key TAT
            rate_period: Seconds it takes to earn back one unit of quantity
            max_burst: Units allowed on top of the steady rate

        Raises:
            ValueError: If rate_period is not positive or max_burst is negative
        """
        if rate_period <= 0:
            raise ValueError("rate_period must be positive")
        if max_burst < 0:
            raise ValueError("max_burst must be at least 0")

        self._store = store
        # All internal arithmetic is integer nanoseconds.
        self._emission_interval = int(round(rate_period * NANOS_PER_SECOND))
        if self._emission_interval < 1:
            raise ValueError("rate_period must be at least one nanosecond")
        self._delay_variation_tolerance = self._emission_interval * (max_burst + 1)
        self._limit = max_burst + 1

    @property
    def store(self) -> RateLimitStore:
        return self._store

    @property
    def limit_size(self) -> int:
        """Maximum burst size reported in every RateLimitInfo."""
        return self._limit

    @property
    def emission_interval(self) -> int:
        return self._emission_interval

    @property
    def delay_variation_tolerance(self) -> int:
        return self._delay_variation_tolerance

    def limit(self, key: Any, quantity: int = 1) -> Tuple[bool, RateLimitInfo]:
        """Decide whether a request of ``quantity`` units for ``key`` is admitted.

        A quantity of 0 reports the current state without consuming anything.

        Args:
            key: Rate limit key; converted with str() if not a string
            quantity: Units requested

        Returns:
            ``(limited, info)``. ``limited`` is True when the request was
            rejected; rejected requests leave the stored state untouched.

        Raises:
            ValueError: If quantity is not a non-negative int
            StoreUpdateFailure: If no commit succeeded within MAX_ATTEMPTS
        """
        # bool is an int subclass; floats would leak into stored nanoseconds.
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise ValueError(f"quantity must be an int, got {type(quantity).__name__}")
        if quantity < 0:
            raise ValueError("quantity must be at least 0")
        key = self._normalize_key(key)
        dvt = self._delay_variation_tolerance

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            stored_tat, now = self._store.get_with_time(key)
            tat = stored_tat if stored_tat is not None else now

            increment = quantity * self._emission_interval
            # An empty bucket (tat in the past) starts counting from now.
            new_tat = max(now, tat) + increment
            allow_at_and_after = new_tat - dvt

            if now < allow_at_and_after:
                # Rejected requests are not charged: report from the old tat.
                time_to_empty = max(tat - now, 0)
                remaining = (dvt - time_to_empty) // self._emission_interval
                retry_after = None
                if increment <= dvt:
                    retry_after = (allow_at_and_after - now) / NANOS_PER_SECOND
                info = RateLimitInfo(
                    limit=self._limit,
                    remaining=min(max(remaining, 0), self._limit),
                    reset_after=time_to_empty / NANOS_PER_SECOND,
                    retry_after=retry_after,
                )
                return True, info

            ttl = new_tat - now
            if self._commit(key, stored_tat, new_tat, ttl):
                info = RateLimitInfo(
                    limit=self._limit,
                    remaining=max((dvt - ttl) // self._emission_interval, 0),
                    reset_after=ttl / NANOS_PER_SECOND,
                    retry_after=None,
                )
                return False, info

            logger.debug(
                f"Lost update race for rate limit key '{key}' (attempt {attempt})",
                extra=get_log_context(key=key, quantity=quantity, attempt=attempt),
            )

        raise self._update_failure(key)

    def mark_overflowed(self, key: Any) -> None:
        """Mark ``key`` as having just used up its whole burst.

        Any previously stored state is overwritten. Useful when abuse is
        detected through another channel.

        Raises:
            StoreUpdateFailure: If no commit succeeded within MAX_ATTEMPTS
        """
        key = self._normalize_key(key)
        dvt = self._delay_variation_tolerance

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            stored_tat, now = self._store.get_with_time(key)
            if self._commit(key, stored_tat, now + dvt, dvt):
                logger.info(
                    f"Marked rate limit key '{key}' as overflowed",
                    extra=get_log_context(key=key, attempt=attempt),
                )
                return

            logger.debug(
                f"Lost update race while overflowing key '{key}' (attempt {attempt})",
                extra=get_log_context(key=key, attempt=attempt),
            )

        raise self._update_failure(key)

    def _commit(self, key: str, stored_tat: Optional[int], new_tat: int, ttl: int) -> bool:
        """Write new_tat only if the store still holds what we read."""
        if stored_tat is None:
            return self._store.set_if_not_exists_with_ttl(key, new_tat, ttl)
        return self._store.compare_and_set_with_ttl(key, stored_tat, new_tat, ttl)

    def _update_failure(self, key: str) -> StoreUpdateFailure:
        error = StoreUpdateFailure(key, self.MAX_ATTEMPTS)
        logger.warning(
            error.message,
            extra=get_log_context(
                key=key,
                attempt=self.MAX_ATTEMPTS,
                backend=getattr(self._store, "backend_name", None),
            ),
        )
        return error

    @staticmethod
    def _normalize_key(key: Any) -> str:
        return key if isinstance(key, str) else str(key)


_rate_limiter: Optional[GCRARateLimiter] = None


def get_rate_limiter(
    store: Optional[RateLimitStore] = None,
    rate_period: Optional[float] = None,
    max_burst: Optional[int] = None,
    force_new: bool = False,
) -> GCRARateLimiter:
    """Get the global rate limiter instance.

    Arguments left as None are taken from settings, and the store from
    get_store(). Passing any explicit argument builds and caches a new
    limiter, as force_new does.
    """
    global _rate_limiter
    explicit = store is not None or rate_period is not None or max_burst is not None
    if _rate_limiter is not None and not (force_new or explicit):
        return _rate_limiter

    from gcra.core.config import settings
    from gcra.stores.factory import get_store

    _rate_limiter = GCRARateLimiter(
        store=store if store is not None else get_store(),
        rate_period=rate_period if rate_period is not None else settings.rate_limit_period_seconds,
        max_burst=max_burst if max_burst is not None else settings.rate_limit_max_burst,
    )
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Reset the global rate limiter instance."""
    global _rate_limiter
    _rate_limiter = None
