"""
Marketplace Reads

Cached read side of the marketplace. Every logical read goes through the
shared ReadCache under its own key and time-to-live; writers never touch
these entries except through CacheInvalidator.
"""

from __future__ import annotations

import structlog

from assetmint.models.marketplace import AssetRecord, PlatformStats, WalletBalance
from assetmint.repositories.asset_repository import AssetRepository
from assetmint.resilience.caching.cache_invalidation import CacheKeys
from assetmint.resilience.caching.query_cache import ReadCache
from assetmint.services.chain_data import AlchemyChainData
from assetmint.services.marketplace import AssetNotFoundError

logger = structlog.get_logger(__name__)


class MarketplaceReads:
    """Listing, detail, stats and balance reads with per-key TTLs."""

    def __init__(
        self,
        repository: AssetRepository,
        cache: ReadCache,
        chain_data: AlchemyChainData | None = None,
        assets_ttl: float = 30.0,
        asset_ttl: float = 15.0,
        platform_stats_ttl: float = 60.0,
        wallet_balance_ttl: float = 30.0,
    ):
        self._repository = repository
        self._cache = cache
        self._chain_data = chain_data
        self._assets_ttl = assets_ttl
        self._asset_ttl = asset_ttl
        self._platform_stats_ttl = platform_stats_ttl
        self._wallet_balance_ttl = wallet_balance_ttl

    @property
    def cache(self) -> ReadCache:
        return self._cache

    async def assets(self) -> list[AssetRecord]:
        return await self._cache.fetch(
            CacheKeys.ASSETS, self._repository.list_assets, ttl=self._assets_ttl
        )

    async def asset(self, asset_id: str) -> AssetRecord:
        """One asset; unknown ids raise AssetNotFoundError and are not memoized."""

        async def load() -> AssetRecord:
            record = await self._repository.get_asset(asset_id)
            if record is None:
                raise AssetNotFoundError(asset_id)
            return record

        return await self._cache.fetch(CacheKeys.asset(asset_id), load, ttl=self._asset_ttl)

    async def platform_stats(self) -> PlatformStats:
        return await self._cache.fetch(
            CacheKeys.PLATFORM_STATS,
            self._repository.get_platform_stats,
            ttl=self._platform_stats_ttl,
        )

    async def wallet_balance(self, address: str) -> WalletBalance:
        async def load() -> WalletBalance:
            if self._chain_data is None:
                return WalletBalance(address=address)
            return await self._chain_data.get_eth_balance(address)

        return await self._cache.fetch(
            CacheKeys.wallet_balance(address), load, ttl=self._wallet_balance_ttl
        )
