"""
Caching
=======

Keyed read cache with per-key time-to-live and mutation-driven invalidation.
"""

from assetmint.resilience.caching.cache_invalidation import (
    CacheInvalidator,
    CacheKeys,
    InvalidationEvent,
    InvalidationStats,
)
from assetmint.resilience.caching.query_cache import (
    CacheEntry,
    CacheKey,
    CacheStats,
    EntryState,
    ReadCache,
)

__all__ = [
    "CacheEntry",
    "CacheInvalidator",
    "CacheKey",
    "CacheKeys",
    "CacheStats",
    "EntryState",
    "InvalidationEvent",
    "InvalidationStats",
    "ReadCache",
]
