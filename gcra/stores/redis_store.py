"""Redis-backed rate limit store for multi-instance deployments.

Values are integer nanosecond timestamps stored as plain Redis strings.
Creation uses ``SET NX PX`` and compare-and-set runs as a Lua script, so
both writes are atomic on the server. The clock is the Redis server's
``TIME``, which every process sharing the keys reads from.
"""

import threading
from typing import Any, Callable, Optional, Tuple, TypeVar

import redis
from redis.exceptions import NoScriptError, ReadOnlyError

from gcra.core.logging import get_log_context, get_logger
from gcra.stores.base import NANOS_PER_MILLI, RateLimitStore, TransientStoreFailure
from gcra.stores.redis_lua import CAS_MISSING_KEY, CAS_SCRIPT, CAS_SHA, CAS_SWAPPED

logger = get_logger(__name__)

T = TypeVar("T")


def classify_failure(exc: Exception) -> Optional[TransientStoreFailure]:
    """Map a Redis exception to the transient condition it signals, if any.

    Args:
        exc: Exception raised by a Redis command.

    Returns:
        The matching TransientStoreFailure, or None for failures that must
        propagate to the caller.
    """
    if isinstance(exc, NoScriptError):
        return TransientStoreFailure.SCRIPT_NOT_CACHED
    if isinstance(exc, ReadOnlyError):
        return TransientStoreFailure.READ_ONLY
    return None


def ttl_to_millis(ttl_nanos: int) -> int:
    """Convert a nanosecond TTL to Redis milliseconds.

    Redis rejects a zero expiration, so anything below one millisecond
    becomes one millisecond.
    """
    ttl_millis = ttl_nanos // NANOS_PER_MILLI
    if ttl_millis <= 0:
        return 1
    return ttl_millis


class RedisStore(RateLimitStore):
    """Rate limit store backed by a synchronous redis-py client.

    Recovers once from two transient conditions without surfacing them:

    - the CAS script was evicted from the server's script cache
      (``NOSCRIPT``): the script is loaded again and the call retried;
    - the connection landed on a read-only replica after a failover
      (``READONLY``): when ``reconnect_on_readonly`` is set, the client's
      connections are closed so the retry reconnects to the new primary.

    Any other error, or a second failure, propagates unchanged. A store built
    directly leaves ``reconnect_on_readonly`` off, so ``READONLY`` reaches the
    caller; get_store() turns it on through ``redis_reconnect_on_readonly``.

    Example:
        >>> store = RedisStore.from_url("redis://localhost:6379/0", key_prefix="gcra:")
        >>> store.set_if_not_exists_with_ttl("user:42", 1_700_000_000_000_000_000, 10**9)
        True
    """

    backend_name = "redis"

    def __init__(
        self,
        redis_client: Any,
        key_prefix: str = "",
        reconnect_on_readonly: bool = False,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_client: A ``redis.Redis`` (or compatible) client instance.
            key_prefix: Prepended to every key.
            reconnect_on_readonly: Reconnect and retry once when a write hits
                a read-only replica.
        """
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._reconnect_on_readonly = reconnect_on_readonly
        self._time_lock = threading.Lock()
        self._last_now = 0

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        key_prefix: str = "",
        reconnect_on_readonly: bool = False,
    ) -> "RedisStore":
        """Create a store with a new client connected to ``redis_url``."""
        return cls(
            redis.Redis.from_url(redis_url),
            key_prefix=key_prefix,
            reconnect_on_readonly=reconnect_on_readonly,
        )

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get_with_time(self, key: str) -> Tuple[Optional[int], int]:
        """Return the stored value and the Redis server time in nanoseconds.

        Redis reports time with microsecond precision.
        """
        seconds, micros = self._redis.time()
        now = (int(seconds) * 1_000_000 + int(micros)) * 1_000
        with self._time_lock:
            if now < self._last_now:
                now = self._last_now
            else:
                self._last_now = now

        value = self._redis.get(self._make_key(key))
        if value is not None:
            value = int(value)
        return value, now

    def set_if_not_exists_with_ttl(self, key: str, value: int, ttl: int) -> bool:
        full_key = self._make_key(key)
        ttl_millis = ttl_to_millis(ttl)
        did_set = self._execute(
            "SET NX",
            full_key,
            lambda: self._redis.set(full_key, value, nx=True, px=ttl_millis),
        )
        return bool(did_set)

    def compare_and_set_with_ttl(
        self, key: str, old_value: int, new_value: int, ttl: int
    ) -> bool:
        full_key = self._make_key(key)
        ttl_millis = ttl_to_millis(ttl)
        result = self._execute(
            "EVALSHA",
            full_key,
            lambda: self._redis.evalsha(
                CAS_SHA, 1, full_key, old_value, new_value, ttl_millis
            ),
        )
        result = int(result)
        if result == CAS_MISSING_KEY:
            logger.debug(
                f"Compare-and-set on missing key {full_key}",
                extra=get_log_context(key=full_key, backend=self.backend_name),
            )
        return result == CAS_SWAPPED

    def _execute(self, command: str, full_key: str, operation: Callable[[], T]) -> T:
        """Run a write, recovering once from a transient store failure."""
        try:
            return operation()
        except redis.RedisError as e:
            failure = classify_failure(e)
            if failure is None or not self._recover(failure):
                raise
            logger.warning(
                f"Retrying {command} for {full_key} after {failure.value}: {e}",
                extra=get_log_context(key=full_key, backend=self.backend_name),
            )
        return operation()

    def _recover(self, failure: TransientStoreFailure) -> bool:
        """Prepare the client for a retry.

        Returns:
            False if this failure is not recoverable with the current
            configuration.
        """
        if failure is TransientStoreFailure.SCRIPT_NOT_CACHED:
            self._redis.script_load(CAS_SCRIPT)
            return True
        if failure is TransientStoreFailure.READ_ONLY and self._reconnect_on_readonly:
            self._redis.close()
            return True
        return False

    def close(self) -> None:
        """Close the Redis connection."""
        self._redis.close()
