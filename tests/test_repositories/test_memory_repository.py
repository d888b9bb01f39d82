"""
Tests for the In-Memory Asset Repository.

Tests cover:
- Asset creation and projection
- Bid rules
- Purchase rules and ownership transfer
- Platform statistics
"""

import pytest

from assetmint.models.marketplace import (
    ActivityType,
    AssetCategory,
    AssetDraft,
    AssetStatus,
    SaleType,
)
from assetmint.repositories.asset_repository import PersistenceStatus
from tests.conftest import BIDDER, BUYER, OWNER


def make_draft(**overrides) -> AssetDraft:
    values = {
        "name": "Harbor Loft",
        "description": "Two-bedroom loft",
        "image": "https://gateway.pinata.cloud/ipfs/bafyloft",
        "category": AssetCategory.REAL_ESTATE,
        "price": 2.0,
        "sale_type": SaleType.AUCTION,
        "royalty_percent": 2.5,
        "supply": 10,
        "owner_wallet_address": OWNER,
        "token_id": "4242",
        "contract_address": "0x" + "a" * 40,
    }
    values.update(overrides)
    return AssetDraft(**values)


class TestCreateAsset:

    @pytest.mark.asyncio
    async def test_create_and_read_back(self, memory_repository):
        result = await memory_repository.create_asset(make_draft())

        assert result.status == PersistenceStatus.ACCEPTED
        record = await memory_repository.get_asset(result.value)
        assert record.name == "Harbor Loft"
        assert record.price_usd == 6400.0
        assert record.token_standard == "ERC-1155"
        assert record.status == AssetStatus.AUCTION
        assert record.creator == OWNER
        assert record.activity[0].type == ActivityType.MINTED

    @pytest.mark.asyncio
    async def test_reads_are_copies(self, memory_repository):
        result = await memory_repository.create_asset(make_draft())

        record = await memory_repository.get_asset(result.value)
        record.owner = "0xmallory"

        assert (await memory_repository.get_asset(result.value)).owner == OWNER

    @pytest.mark.asyncio
    async def test_unknown_asset_is_none(self, memory_repository):
        assert await memory_repository.get_asset("nope") is None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, memory_repository):
        await memory_repository.create_asset(make_draft(name="First"))
        await memory_repository.create_asset(make_draft(name="Second"))

        names = [a.name for a in await memory_repository.list_assets()]

        assert set(names) == {"First", "Second"}
        assert len(names) == 2


class TestPlaceBid:

    @pytest.mark.asyncio
    async def test_accepts_higher_bid(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value

        first = await memory_repository.place_bid(asset_id, BIDDER, 1.0)
        second = await memory_repository.place_bid(asset_id, BUYER, 1.5)

        assert first.ok and second.ok
        assert second.value.asset_owner == OWNER
        assert second.value.amount_usd == 4800.0
        record = await memory_repository.get_asset(asset_id)
        assert record.highest_bid == 1.5

    @pytest.mark.asyncio
    async def test_rejects_bid_not_above_highest(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value
        await memory_repository.place_bid(asset_id, BIDDER, 1.0)

        result = await memory_repository.place_bid(asset_id, BUYER, 1.0)

        assert result.status == PersistenceStatus.REJECTED
        assert "higher" in result.message

    @pytest.mark.asyncio
    async def test_rejects_owner_bid(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value

        result = await memory_repository.place_bid(asset_id, OWNER, 5.0)

        assert result.status == PersistenceStatus.REJECTED

    @pytest.mark.asyncio
    async def test_rejects_unknown_asset(self, memory_repository):
        result = await memory_repository.place_bid("missing", BIDDER, 1.0)

        assert result.status == PersistenceStatus.REJECTED
        assert "not found" in result.message


class TestPurchaseAsset:

    @pytest.mark.asyncio
    async def test_purchase_transfers_ownership(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value

        result = await memory_repository.purchase_asset(asset_id, BUYER, 2.0)

        assert result.ok
        assert result.value.seller == OWNER
        assert result.value.transaction_hash.startswith("0x")
        record = await memory_repository.get_asset(asset_id)
        assert record.owner == BUYER
        assert record.activity[0].type == ActivityType.SOLD

    @pytest.mark.asyncio
    async def test_rejects_price_below_listing(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value

        result = await memory_repository.purchase_asset(asset_id, BUYER, 1.8)

        assert result.status == PersistenceStatus.REJECTED
        assert result.message.startswith("insufficient listing")

    @pytest.mark.asyncio
    async def test_rejects_buying_own_asset(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value

        result = await memory_repository.purchase_asset(asset_id, OWNER, 2.0)

        assert result.status == PersistenceStatus.REJECTED


class TestPlatformStats:

    @pytest.mark.asyncio
    async def test_stats_track_volume_and_users(self, memory_repository):
        asset_id = (await memory_repository.create_asset(make_draft())).value
        await memory_repository.create_asset(make_draft(name="Other"))
        await memory_repository.place_bid(asset_id, BIDDER, 1.0)
        await memory_repository.purchase_asset(asset_id, BUYER, 2.5)

        stats = await memory_repository.get_platform_stats()

        assert stats.total_volume == 2.5
        assert stats.assets_listed == 2
        assert stats.active_users == 3
