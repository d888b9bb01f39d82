"""
In-Memory Asset Repository

Process-local persistence gateway used when no remote store is configured
and as the default test double. It enforces the marketplace rules a remote
store would enforce with constraints and triggers:

- bids and purchases require an existing asset
- a bid must exceed the current highest bid
- owners cannot bid on or buy their own asset
- a purchase must pay at least the listing price
"""

from __future__ import annotations

from datetime import UTC, datetime

from assetmint.models.base import generate_id
from assetmint.models.marketplace import (
    ActivityEvent,
    ActivityType,
    AssetDraft,
    AssetRecord,
    BidOffer,
    BidReceipt,
    PlatformStats,
    PurchaseReceipt,
)
from assetmint.repositories.asset_repository import AssetRepository, PersistenceResult
from assetmint.services.identifiers import IdentifierIssuer, SyntheticIdentifierIssuer


class InMemoryAssetRepository(AssetRepository):
    """Dictionary-backed asset store."""

    def __init__(
        self,
        eth_usd_rate: float = 3200.0,
        identifier_issuer: IdentifierIssuer | None = None,
    ) -> None:
        super().__init__()
        self._eth_usd_rate = eth_usd_rate
        self._issuer = identifier_issuer or SyntheticIdentifierIssuer()
        self._assets: dict[str, AssetRecord] = {}
        self._volume_eth = 0.0
        self._participants: set[str] = set()

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_asset(self, draft: AssetDraft) -> PersistenceResult[str]:
        asset_id = generate_id()
        record = AssetRecord(
            id=asset_id,
            name=draft.name,
            description=draft.description,
            image=draft.image,
            category=draft.category,
            price=draft.price,
            price_usd=round(draft.price * self._eth_usd_rate, 2),
            owner=draft.owner_wallet_address,
            creator=draft.owner_wallet_address,
            token_id=draft.token_id,
            contract_address=draft.contract_address,
            blockchain=draft.blockchain,
            token_standard=draft.token_standard,
            status=draft.status,
            sale_type=draft.sale_type,
            royalty_percent=draft.royalty_percent,
            supply=draft.supply,
            metadata_content_hash=draft.metadata_content_hash,
            image_content_hash=draft.image_content_hash,
            activity=[
                ActivityEvent(
                    type=ActivityType.MINTED,
                    from_address="NullAddress",
                    to_address=draft.owner_wallet_address,
                    price=draft.price,
                )
            ],
        )
        self._assets[asset_id] = record
        self._participants.add(draft.owner_wallet_address)
        self.logger.info("asset_created", asset_id=asset_id, name=draft.name)
        return PersistenceResult.accepted(asset_id)

    async def place_bid(
        self, asset_id: str, bidder: str, amount_eth: float
    ) -> PersistenceResult[BidReceipt]:
        asset = self._assets.get(asset_id)
        if asset is None:
            return PersistenceResult.rejected(f"Asset {asset_id} not found")
        if asset.owner == bidder:
            return PersistenceResult.rejected("Owners cannot bid on their own asset")
        if amount_eth <= asset.highest_bid:
            return PersistenceResult.rejected(
                f"Bid must be higher than the current highest bid of {asset.highest_bid} ETH"
            )

        offer = BidOffer(
            bidder=bidder,
            amount=amount_eth,
            amount_usd=round(amount_eth * self._eth_usd_rate, 2),
        )
        asset.bids = [offer, *asset.bids]
        asset.activity.insert(
            0,
            ActivityEvent(
                type=ActivityType.BID,
                from_address=bidder,
                to_address="Marketplace",
                price=amount_eth,
            ),
        )
        self._participants.add(bidder)

        return PersistenceResult.accepted(
            BidReceipt(
                bid_id=offer.id,
                asset_id=asset_id,
                bidder=bidder,
                amount_eth=amount_eth,
                amount_usd=offer.amount_usd,
                asset_name=asset.name,
                asset_owner=asset.owner,
                created_at=offer.created_at,
            )
        )

    async def purchase_asset(
        self, asset_id: str, buyer: str, price_eth: float
    ) -> PersistenceResult[PurchaseReceipt]:
        asset = self._assets.get(asset_id)
        if asset is None:
            return PersistenceResult.rejected(f"Asset {asset_id} not found")
        if asset.owner == buyer:
            return PersistenceResult.rejected("Buyer already owns this asset")
        if price_eth < asset.price:
            return PersistenceResult.rejected(
                f"insufficient listing: price {price_eth} ETH is below {asset.price} ETH"
            )

        seller = asset.owner
        tx_hash = self._issuer.issue_transaction_hash()
        asset.owner = buyer
        asset.activity.insert(
            0,
            ActivityEvent(
                type=ActivityType.SOLD,
                from_address=seller or "marketplace",
                to_address=buyer,
                price=price_eth,
            ),
        )
        self._volume_eth += price_eth
        self._participants.add(buyer)

        return PersistenceResult.accepted(
            PurchaseReceipt(
                asset_id=asset_id,
                asset_name=asset.name,
                buyer=buyer,
                seller=seller,
                price_eth=price_eth,
                transaction_hash=tx_hash,
                purchased_at=datetime.now(UTC),
            )
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_assets(self) -> list[AssetRecord]:
        assets = [a.model_copy(deep=True) for a in self._assets.values()]
        assets.sort(key=lambda a: a.listed_at, reverse=True)
        return assets

    async def get_asset(self, asset_id: str) -> AssetRecord | None:
        asset = self._assets.get(asset_id)
        return asset.model_copy(deep=True) if asset else None

    async def get_platform_stats(self) -> PlatformStats:
        return PlatformStats(
            total_volume=round(self._volume_eth, 6),
            assets_listed=len(self._assets),
            active_users=len(self._participants),
        )
