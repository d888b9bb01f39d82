"""
Read Cache
==========

Process-local memoization of marketplace reads, keyed by ordered tuples
such as ("assets",) or ("asset", "a1").

Entry lifecycle:

    Fresh --(ttl elapsed | invalidate)--> Stale --(fetch)--> Fetching
    Fetching --> Fresh | Error

A key invalidated while its fetch is in flight settles as Stale, so the
next read fetches again instead of trusting data that predates the
mutation. Concurrent reads of one key share a single in-flight fetch,
except that reads arriving after an invalidation start a new one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, TypeVar

import structlog

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")

CacheKey = tuple[str, ...]


class EntryState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    FETCHING = "fetching"
    ERROR = "error"


def key_matches(pattern: CacheKey, key: CacheKey) -> bool:
    """A pattern matches every key it is a prefix of."""
    return key[: len(pattern)] == pattern


@dataclass
class CacheEntry:
    """Last known value of one cached read."""

    key: CacheKey
    ttl: float
    state: EntryState = EntryState.STALE
    value: Any = None
    has_value: bool = False
    fetched_at: float | None = None
    error: str | None = None
    # Bumped by every invalidation; a fetch that started under an older
    # generation settles as Stale.
    generation: int = 0
    # Sequence of the newest load; older loads never write back.
    load_seq: int = 0

    def is_expired(self, now: float) -> bool:
        return self.fetched_at is None or now - self.fetched_at >= self.ttl


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    shared_fetches: int = 0
    invalidations: int = 0
    errors: int = 0
    keys: int = 0
    by_state: dict[str, int] = field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class ReadCache:
    """
    Keyed read cache with per-key time-to-live.

    invalidate() is the only mutation entry point used by writers; it marks
    entries stale and never pushes data into the cache.
    """

    def __init__(
        self,
        default_ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._inflight: dict[CacheKey, asyncio.Task[Any]] = {}
        self._stats = CacheStats()

    def _effective_state(self, entry: CacheEntry) -> EntryState:
        if entry.state == EntryState.FRESH and entry.is_expired(self._clock()):
            entry.state = EntryState.STALE
        return entry.state

    def state(self, key: CacheKey) -> EntryState | None:
        """Current state of a key, or None if it was never read."""
        entry = self._entries.get(key)
        return self._effective_state(entry) if entry else None

    def peek(self, key: CacheKey) -> CacheEntry | None:
        """Snapshot of an entry without fetching."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._effective_state(entry)
        return replace(entry)

    async def fetch(
        self,
        key: CacheKey,
        fetcher: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """
        Return the cached value while Fresh, otherwise fetch it.

        Fetch errors leave the entry in Error and propagate to every caller
        waiting on that fetch.
        """
        key = tuple(key)
        entry = self._entries.get(key)

        if entry is not None and self._effective_state(entry) == EntryState.FRESH:
            self._stats.hits += 1
            return entry.value

        inflight = self._inflight.get(key)
        if inflight is not None:
            self._stats.shared_fetches += 1
            return await asyncio.shield(inflight)

        self._stats.misses += 1
        if entry is None:
            entry = CacheEntry(key=key, ttl=ttl or self._default_ttl)
            self._entries[key] = entry
        elif ttl:
            entry.ttl = ttl

        task = asyncio.ensure_future(self._load(entry, fetcher))
        self._inflight[key] = task
        return await asyncio.shield(task)

    async def _load(self, entry: CacheEntry, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        generation = entry.generation
        entry.load_seq += 1
        seq = entry.load_seq
        entry.state = EntryState.FETCHING
        try:
            value = await fetcher()
        except Exception as e:
            error = str(e) or type(e).__name__
            self._stats.errors += 1
            logger.warning("cache_fetch_failed", key=entry.key, error=error)
            if seq == entry.load_seq:
                entry.state = EntryState.ERROR
                entry.error = error
            raise
        finally:
            if self._inflight.get(entry.key) is asyncio.current_task():
                del self._inflight[entry.key]

        # A fetch started after invalidation owns the entry now.
        if seq != entry.load_seq:
            logger.debug("cache_fetch_superseded", key=entry.key)
            return value

        entry.value = value
        entry.has_value = True
        entry.error = None
        entry.fetched_at = self._clock()
        if entry.generation != generation:
            entry.state = EntryState.STALE
            logger.debug("cache_fetch_superseded", key=entry.key)
        else:
            entry.state = EntryState.FRESH
        return value

    def invalidate(self, keys: Iterable[CacheKey]) -> int:
        """
        Mark every entry matched by any of keys stale.

        Matching is by prefix. Returns the number of entries marked.
        """
        patterns = [tuple(k) for k in keys]
        marked = 0
        for key, entry in self._entries.items():
            if not any(key_matches(p, key) for p in patterns):
                continue
            entry.generation += 1
            # Later reads must not join a fetch that predates the mutation.
            self._inflight.pop(key, None)
            if entry.state in (EntryState.FRESH, EntryState.FETCHING):
                entry.state = EntryState.STALE
            marked += 1

        self._stats.invalidations += marked
        return marked

    def clear(self) -> None:
        self._entries = {}
        self._inflight = {}

    def get_stats(self) -> CacheStats:
        by_state: dict[str, int] = {}
        for entry in self._entries.values():
            state = self._effective_state(entry).value
            by_state[state] = by_state.get(state, 0) + 1
        return replace(self._stats, keys=len(self._entries), by_state=by_state)
