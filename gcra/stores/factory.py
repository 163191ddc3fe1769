"""Settings-driven store selection."""

from typing import Optional

from gcra.core.logging import get_logger
from gcra.stores.base import RateLimitStore
from gcra.stores.memory import InMemoryStore
from gcra.stores.redis_store import RedisStore

logger = get_logger(__name__)

# Global store instance (singleton pattern)
_store_instance: Optional[RateLimitStore] = None


def get_store(
    backend: Optional[str] = None,
    redis_url: Optional[str] = None,
    force_new: bool = False,
) -> RateLimitStore:
    """Get or create the global store instance.

    Args:
        backend: Store backend to use ('memory', 'redis', or None for auto).
            When None, checks settings.redis_enabled.
        redis_url: Redis connection URL. If not provided, uses settings.redis_url.
        force_new: If True, create a new instance even if one exists.

    Returns:
        A RateLimitStore instance (InMemoryStore or RedisStore).

    Raises:
        ValueError: If ``backend`` names an unknown backend.
    """
    global _store_instance

    if _store_instance is not None and not force_new:
        return _store_instance

    # Import settings here so tests can patch the module attribute
    from gcra.core.config import settings

    if backend is None:
        backend = "redis" if settings.redis_enabled else "memory"

    if backend == "redis":
        _store_instance = RedisStore.from_url(
            redis_url or settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            reconnect_on_readonly=settings.redis_reconnect_on_readonly,
        )
        logger.info("Using Redis rate limit store")
    elif backend == "memory":
        _store_instance = InMemoryStore()
        logger.debug("Using in-memory rate limit store")
    else:
        raise ValueError(f"Unknown rate limit store backend: {backend!r}")

    return _store_instance


def reset_store() -> None:
    """Reset the global store instance.

    This is primarily useful for testing.
    """
    global _store_instance
    _store_instance = None
