"""Store contract shared by every rate limit backend.

A store keeps one integer per key (the theoretical arrival time, in
nanoseconds) together with an expiration, and hands out timestamps from the
clock those integers are measured against. All timestamps and durations
crossing this interface are integer nanoseconds.
"""

import enum
from abc import ABC, abstractmethod
from typing import Optional, Tuple


NANOS_PER_MILLI = 1_000_000


class TransientStoreFailure(enum.Enum):
    """Store conditions that an adapter recovers from with a single retry."""

    SCRIPT_NOT_CACHED = "script_not_cached"
    READ_ONLY = "read_only"


class RateLimitStore(ABC):
    """Abstract base class for rate limit stores.

    Implementations must make ``set_if_not_exists_with_ttl`` and
    ``compare_and_set_with_ttl`` linearizable with respect to each other
    for a given key. The limiter relies on nothing else for safety.
    """

    #: Short backend name, used in log context.
    backend_name: str = "abstract"

    @abstractmethod
    def get_with_time(self, key: str) -> Tuple[Optional[int], int]:
        """Read the stored value of a key and the store's current time.

        Args:
            key: The rate limit key.

        Returns:
            A ``(value, now)`` tuple. ``value`` is None when the key is not
            stored; ``now`` is a nanosecond timestamp from the store's clock
            and never goes backwards between calls on the same store.
        """
        pass

    @abstractmethod
    def set_if_not_exists_with_ttl(self, key: str, value: int, ttl: int) -> bool:
        """Create a key only if it does not exist yet.

        Args:
            key: The rate limit key.
            value: The value to store.
            ttl: Expiration in nanoseconds. A TTL that rounds to zero in the
                backend's own unit is raised to the smallest positive unit.

        Returns:
            True if the key was created, False if it already existed.
        """
        pass

    @abstractmethod
    def compare_and_set_with_ttl(
        self, key: str, old_value: int, new_value: int, ttl: int
    ) -> bool:
        """Atomically replace a key's value if it still equals ``old_value``.

        On success the key's expiration is reset to ``ttl`` nanoseconds.

        Args:
            key: The rate limit key.
            old_value: The value the caller last read.
            new_value: The value to store.
            ttl: Expiration in nanoseconds.

        Returns:
            True if the swap happened. False if the value differed or the key
            does not exist; a missing key is not an error.
        """
        pass
