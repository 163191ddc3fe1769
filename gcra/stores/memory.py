"""In-memory rate limit store.

Suitable for tests and single-process deployments. State is not shared
between processes and is lost when the process exits.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from gcra.stores.base import RateLimitStore


@dataclass
class _StoreEntry:
    """Internal store entry with TTL tracking (nanoseconds)."""

    value: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        """Check if the entry has expired at ``now``."""
        return now >= self.expires_at


class InMemoryStore(RateLimitStore):
    """Dictionary-backed store with TTL support.

    Every operation runs under one lock, which makes create and
    compare-and-set linearizable across threads sharing the instance.

    Args:
        clock: Callable returning the current time in nanoseconds. Expiry is
            measured on the same clock that ``get_with_time`` reports.
    """

    backend_name = "memory"

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._data: Dict[str, _StoreEntry] = {}
        self._lock = threading.Lock()
        self._last_now = 0

    def _now(self) -> int:
        # Callers must hold the lock.
        self._last_now = max(self._last_now, int(self._clock()))
        return self._last_now

    def _live_entry(self, key: str, now: int) -> Optional[_StoreEntry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._data[key]
            return None
        return entry

    def get_with_time(self, key: str) -> Tuple[Optional[int], int]:
        with self._lock:
            now = self._now()
            entry = self._live_entry(key, now)
            return (entry.value if entry is not None else None), now

    def set_if_not_exists_with_ttl(self, key: str, value: int, ttl: int) -> bool:
        with self._lock:
            now = self._now()
            if self._live_entry(key, now) is not None:
                return False
            self._data[key] = _StoreEntry(value=value, expires_at=now + max(ttl, 1))
            return True

    def compare_and_set_with_ttl(
        self, key: str, old_value: int, new_value: int, ttl: int
    ) -> bool:
        with self._lock:
            now = self._now()
            entry = self._live_entry(key, now)
            if entry is None or entry.value != old_value:
                return False
            entry.value = new_value
            entry.expires_at = now + max(ttl, 1)
            return True

    def cleanup_expired(self) -> int:
        """Remove all expired entries from the store.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._now()
            expired_keys = [
                key for key, entry in self._data.items() if entry.is_expired(now)
            ]
            for key in expired_keys:
                del self._data[key]
            return len(expired_keys)

    def clear(self) -> None:
        """Clear all entries from the store."""
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
