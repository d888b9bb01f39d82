"""
Cache Invalidation
==================

Maps marketplace mutations to the read keys they make stale and applies
them to the read cache before the mutation returns to its caller.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from assetmint.resilience.caching.query_cache import CacheKey, ReadCache

logger = structlog.get_logger(__name__)


class CacheKeys:
    """Key builders for every logical read, and the sets each mutation touches."""

    ASSETS: CacheKey = ("assets",)
    # In no mutation key set; platform stats refresh on their TTL only.
    PLATFORM_STATS: CacheKey = ("platformStats",)
    WALLET_BALANCE: CacheKey = ("walletBalance",)

    @staticmethod
    def asset(asset_id: str) -> CacheKey:
        return ("asset", asset_id)

    @staticmethod
    def wallet_balance(address: str | None = None) -> CacheKey:
        """One wallet's balance, or the prefix matching every balance."""
        return ("walletBalance", address) if address else CacheKeys.WALLET_BALANCE

    @classmethod
    def for_mint(cls) -> frozenset[CacheKey]:
        return frozenset({cls.ASSETS})

    @classmethod
    def for_bid(cls, asset_id: str) -> frozenset[CacheKey]:
        return frozenset({cls.asset(asset_id), cls.ASSETS})

    @classmethod
    def for_purchase(cls, asset_id: str) -> frozenset[CacheKey]:
        return frozenset({cls.asset(asset_id), cls.ASSETS, cls.wallet_balance()})


@dataclass
class InvalidationEvent:
    """Keys invalidated on behalf of one mutation."""

    operation: str
    keys: frozenset[CacheKey]
    entries_invalidated: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class InvalidationStats:
    """Statistics for cache invalidation monitoring."""

    events_processed: int = 0
    keys_requested: int = 0
    entries_invalidated: int = 0
    listener_errors: int = 0
    by_operation: dict[str, int] = field(default_factory=dict)


class CacheInvalidator:
    """
    Sole mutation entry point into the read cache.

    invalidate() marks entries stale synchronously; awaiting it guarantees
    every declared key is stale before the caller continues. Listeners
    observe each event after the cache has been updated.
    """

    def __init__(self, cache: ReadCache):
        self._cache = cache
        self._stats = InvalidationStats()
        self._listeners: list[Callable[[InvalidationEvent], None]] = []

    @property
    def cache(self) -> ReadCache:
        return self._cache

    def register_listener(self, listener: Callable[[InvalidationEvent], None]) -> None:
        self._listeners.append(listener)

    async def invalidate(
        self,
        keys: Iterable[CacheKey],
        operation: str = "manual",
    ) -> InvalidationEvent:
        key_set = frozenset(tuple(k) for k in keys)
        marked = self._cache.invalidate(key_set)

        event = InvalidationEvent(operation=operation, keys=key_set, entries_invalidated=marked)
        self._stats.events_processed += 1
        self._stats.keys_requested += len(key_set)
        self._stats.entries_invalidated += marked
        self._stats.by_operation[operation] = self._stats.by_operation.get(operation, 0) + 1

        logger.info(
            "cache_keys_invalidated",
            operation=operation,
            keys=sorted(key_set),
            entries=marked,
        )

        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                self._stats.listener_errors += 1
                logger.warning("invalidation_listener_error", operation=operation, error=str(e))

        return event

    def get_stats(self) -> InvalidationStats:
        return self._stats
