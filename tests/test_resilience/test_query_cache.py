"""
Tests for the Read Cache.

Tests cover:
- Fresh hits and misses
- Time-to-live staleness
- Prefix invalidation
- Shared in-flight fetches
- Invalidation during a fetch
- Error state
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from assetmint.resilience.caching.query_cache import (
    CacheStats,
    EntryState,
    ReadCache,
    key_matches,
)


class TestKeyMatching:
    def test_exact_key(self):
        assert key_matches(("asset", "a1"), ("asset", "a1"))

    def test_prefix_matches_scoped_keys(self):
        assert key_matches(("walletBalance",), ("walletBalance", "0xabc"))

    def test_similar_names_do_not_match(self):
        assert not key_matches(("asset",), ("assets",))
        assert not key_matches(("assets",), ("asset", "a1"))

    def test_longer_pattern_does_not_match_shorter_key(self):
        assert not key_matches(("asset", "a1"), ("asset",))


class TestReadCache:
    """Entry lifecycle."""

    @pytest.mark.asyncio
    async def test_fresh_entry_is_served_from_cache(self, read_cache):
        fetcher = AsyncMock(return_value=[1, 2])

        first = await read_cache.fetch(("assets",), fetcher)
        second = await read_cache.fetch(("assets",), fetcher)

        assert first == second == [1, 2]
        assert fetcher.await_count == 1
        stats = read_cache.get_stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == 0.5

    @pytest.mark.asyncio
    async def test_ttl_expiry_marks_stale(self, read_cache, clock):
        fetcher = AsyncMock(side_effect=["old", "new"])
        await read_cache.fetch(("platformStats",), fetcher, ttl=60)

        clock.advance(59)
        assert read_cache.state(("platformStats",)) == EntryState.FRESH

        clock.advance(1)
        assert read_cache.state(("platformStats",)) == EntryState.STALE
        assert await read_cache.fetch(("platformStats",), fetcher, ttl=60) == "new"

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, read_cache):
        fetcher = AsyncMock(side_effect=["v1", "v2"])
        await read_cache.fetch(("asset", "a1"), fetcher)

        marked = read_cache.invalidate([("asset", "a1")])

        assert marked == 1
        assert read_cache.state(("asset", "a1")) == EntryState.STALE
        assert await read_cache.fetch(("asset", "a1"), fetcher) == "v2"

    @pytest.mark.asyncio
    async def test_prefix_invalidation(self, read_cache):
        for address in ("0x1", "0x2"):
            await read_cache.fetch(("walletBalance", address), AsyncMock(return_value=0))
        await read_cache.fetch(("assets",), AsyncMock(return_value=[]))

        marked = read_cache.invalidate([("walletBalance",)])

        assert marked == 2
        assert read_cache.state(("walletBalance", "0x1")) == EntryState.STALE
        assert read_cache.state(("walletBalance", "0x2")) == EntryState.STALE
        assert read_cache.state(("assets",)) == EntryState.FRESH

    def test_invalidating_unknown_key_is_noop(self, read_cache):
        assert read_cache.invalidate([("asset", "missing")]) == 0
        assert read_cache.state(("asset", "missing")) is None

    @pytest.mark.asyncio
    async def test_invalidation_is_idempotent(self, read_cache):
        await read_cache.fetch(("assets",), AsyncMock(return_value=[]))

        read_cache.invalidate([("assets",)])
        read_cache.invalidate([("assets",)])

        assert read_cache.state(("assets",)) == EntryState.STALE

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_fetch(self, read_cache):
        gate = asyncio.Event()
        calls = 0

        async def fetcher():
            nonlocal calls
            calls += 1
            await gate.wait()
            return "value"

        first = asyncio.create_task(read_cache.fetch(("assets",), fetcher))
        second = asyncio.create_task(read_cache.fetch(("assets",), fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert read_cache.state(("assets",)) == EntryState.FETCHING

        gate.set()
        assert await first == "value"
        assert await second == "value"
        assert calls == 1
        assert read_cache.get_stats().shared_fetches == 1

    @pytest.mark.asyncio
    async def test_invalidated_during_fetch_settles_stale(self, read_cache):
        gate = asyncio.Event()

        async def fetcher():
            await gate.wait()
            return "pre-mutation"

        pending = asyncio.create_task(read_cache.fetch(("asset", "a1"), fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert read_cache.invalidate([("asset", "a1")]) == 1
        gate.set()

        assert await pending == "pre-mutation"
        assert read_cache.state(("asset", "a1")) == EntryState.STALE
        assert await read_cache.fetch(("asset", "a1"), AsyncMock(return_value="fresh")) == "fresh"

    @pytest.mark.asyncio
    async def test_read_after_invalidation_does_not_join_old_fetch(self, read_cache):
        old_gate = asyncio.Event()

        async def old_fetcher():
            await old_gate.wait()
            return "pre-mutation"

        pending = asyncio.create_task(read_cache.fetch(("asset", "a1"), old_fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        read_cache.invalidate([("asset", "a1")])
        fresh = await read_cache.fetch(("asset", "a1"), AsyncMock(return_value="post-mutation"))
        assert fresh == "post-mutation"

        old_gate.set()
        assert await pending == "pre-mutation"

        # the older fetch finishing late leaves the newer value in place
        assert read_cache.state(("asset", "a1")) == EntryState.FRESH
        assert read_cache.peek(("asset", "a1")).value == "post-mutation"

    @pytest.mark.asyncio
    async def test_fetch_error_sets_error_state(self, read_cache):
        fetcher = AsyncMock(side_effect=ConnectionError("backend down"))

        with pytest.raises(ConnectionError):
            await read_cache.fetch(("platformStats",), fetcher)

        assert read_cache.state(("platformStats",)) == EntryState.ERROR
        assert read_cache.peek(("platformStats",)).error == "backend down"
        assert read_cache.get_stats().errors == 1

    @pytest.mark.asyncio
    async def test_error_entry_refetches(self, read_cache):
        fetcher = AsyncMock(side_effect=[ConnectionError("down"), "recovered"])
        with pytest.raises(ConnectionError):
            await read_cache.fetch(("assets",), fetcher)

        assert await read_cache.fetch(("assets",), fetcher) == "recovered"
        assert read_cache.state(("assets",)) == EntryState.FRESH

    @pytest.mark.asyncio
    async def test_peek_does_not_fetch(self, read_cache):
        assert read_cache.peek(("assets",)) is None

        await read_cache.fetch(("assets",), AsyncMock(return_value=["x"]))
        snapshot = read_cache.peek(("assets",))

        assert snapshot.value == ["x"]
        assert snapshot.state == EntryState.FRESH
        assert snapshot.has_value

    @pytest.mark.asyncio
    async def test_clear(self, read_cache):
        await read_cache.fetch(("assets",), AsyncMock(return_value=[]))

        read_cache.clear()

        assert read_cache.state(("assets",)) is None

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            ReadCache(default_ttl=0)


class TestCacheStats:
    def test_hit_rate_without_traffic(self):
        assert CacheStats().hit_rate == 0.0
