"""Rate limit stores.

Every backend implements the RateLimitStore contract: read a value with the
store's time, create-if-absent, and compare-and-set, each with expiration.
"""

from .base import RateLimitStore, TransientStoreFailure
from .factory import get_store, reset_store
from .memory import InMemoryStore
from .redis_lua import CAS_SCRIPT, CAS_SHA
from .redis_store import RedisStore

__all__ = [
    "RateLimitStore",
    "TransientStoreFailure",
    "InMemoryStore",
    "RedisStore",
    "CAS_SCRIPT",
    "CAS_SHA",
    "get_store",
    "reset_store",
]
