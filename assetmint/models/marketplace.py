"""
Marketplace Models

Requests, outcomes and durable projections for the asset lifecycle:
mint, bid and purchase.
"""

from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator

from assetmint.models.base import AssetMintModel, FrozenModel, generate_id, utc_now


class AssetCategory(str, Enum):
    """Classes of real-world asset that can be tokenized."""

    REAL_ESTATE = "Real Estate"
    ART = "Art"
    COLLECTIBLES = "Collectibles"
    INTELLECTUAL_PROPERTY = "Intellectual Property"
    COMMODITIES = "Commodities"


class SaleType(str, Enum):
    FIXED = "fixed"
    AUCTION = "auction"


class AssetStatus(str, Enum):
    BUY_NOW = "Buy Now"
    AUCTION = "Auction"
    NEW = "New"


class Blockchain(str, Enum):
    ETHEREUM = "Ethereum"
    POLYGON = "Polygon"


class ActivityType(str, Enum):
    MINTED = "Minted"
    LISTED = "Listed"
    SOLD = "Sold"
    BID = "Bid"
    TRANSFER = "Transfer"


def token_standard_for(supply: int) -> str:
    """Single-edition assets are ERC-721; editions are ERC-1155."""
    return "ERC-1155" if supply > 1 else "ERC-721"


def status_for(sale_type: SaleType) -> AssetStatus:
    return AssetStatus.AUCTION if sale_type == SaleType.AUCTION else AssetStatus.BUY_NOW


# =============================================================================
# Requests (created per user action, never persisted)
# =============================================================================


class MintRequest(FrozenModel):
    """Input to a mint operation."""

    image_reference: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    category: AssetCategory
    price: float = Field(gt=0)
    sale_type: SaleType = SaleType.FIXED
    royalty_percent: float = Field(default=0, ge=0, le=100)
    supply: int = Field(default=1, ge=1)
    owner_wallet_address: str = Field(min_length=1)

    @property
    def file_slug(self) -> str:
        """Upload name for the primary file: lower-case, whitespace collapsed to '-'."""
        return "-".join(self.name.split()).lower() + "-image"


class BidRequest(FrozenModel):
    asset_id: str = Field(min_length=1)
    bidder_identity: str = Field(min_length=1)
    amount_eth: float = Field(gt=0)


class PurchaseRequest(FrozenModel):
    asset_id: str = Field(min_length=1)
    buyer_wallet_address: str = Field(min_length=1)
    price_eth: float = Field(gt=0)


# =============================================================================
# Gateway inputs and results
# =============================================================================


class AssetDraft(FrozenModel):
    """Attributes handed to the persistence gateway to create an asset record."""

    name: str
    description: str = ""
    image: str
    category: AssetCategory
    price: float = Field(gt=0)
    sale_type: SaleType
    royalty_percent: float = Field(ge=0, le=100)
    supply: int = Field(ge=1)
    owner_wallet_address: str
    token_id: str
    contract_address: str
    blockchain: Blockchain = Blockchain.ETHEREUM
    metadata_content_hash: str = ""
    metadata_url: str = ""
    image_content_hash: str = ""

    @property
    def token_standard(self) -> str:
        return token_standard_for(self.supply)

    @property
    def status(self) -> AssetStatus:
        return status_for(self.sale_type)


class BidReceipt(AssetMintModel):
    """Durable record of an accepted bid, as reported by the persistence gateway."""

    bid_id: str = Field(default_factory=generate_id)
    asset_id: str
    bidder: str
    amount_eth: float
    amount_usd: float = 0.0
    asset_name: str = ""
    asset_owner: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class PurchaseReceipt(AssetMintModel):
    """Settled purchase; ownership has moved from seller to buyer."""

    asset_id: str
    asset_name: str = ""
    buyer: str
    seller: str | None = None
    price_eth: float
    transaction_hash: str
    purchased_at: datetime = Field(default_factory=utc_now)


class MintOutcome(AssetMintModel):
    """
    Result of a successful mint.

    token_id, contract_address and transaction_hash are issued locally as
    placeholders for values a ledger would assign.
    """

    asset_id: str
    token_id: str
    contract_address: str
    content_hash: str = ""
    image_content_hash: str = ""
    transaction_hash: str
    image_url: str
    metadata_url: str = ""
    degraded_stages: list[str] = Field(default_factory=list)


# =============================================================================
# Read projections
# =============================================================================


class BidOffer(AssetMintModel):
    id: str = Field(default_factory=generate_id)
    bidder: str
    amount: float
    amount_usd: float = 0.0
    created_at: datetime = Field(default_factory=utc_now)


class ActivityEvent(AssetMintModel):
    id: str = Field(default_factory=generate_id)
    type: ActivityType
    from_address: str
    to_address: str
    price: float | None = None
    created_at: datetime = Field(default_factory=utc_now)


class AssetRecord(AssetMintModel):
    """Durable projection of an asset with its bids and ownership."""

    id: str
    name: str
    description: str = ""
    image: str
    category: AssetCategory
    price: float
    price_usd: float = 0.0
    owner: str | None = None
    creator: str | None = None
    token_id: str = ""
    contract_address: str = ""
    blockchain: Blockchain = Blockchain.ETHEREUM
    token_standard: str = "ERC-721"
    status: AssetStatus = AssetStatus.NEW
    sale_type: SaleType = SaleType.FIXED
    royalty_percent: float = 0.0
    supply: int = 1
    metadata_content_hash: str = ""
    image_content_hash: str = ""
    views: int = 0
    favorites: int = 0
    listed_at: datetime = Field(default_factory=utc_now)
    bids: list[BidOffer] = Field(default_factory=list)
    activity: list[ActivityEvent] = Field(default_factory=list)

    @field_validator("bids")
    @classmethod
    def newest_bid_first(cls, v: list[BidOffer]) -> list[BidOffer]:
        return sorted(v, key=lambda b: b.created_at, reverse=True)

    @property
    def highest_bid(self) -> float:
        return max((b.amount for b in self.bids), default=0.0)


class PlatformStats(AssetMintModel):
    total_volume: float = 0.0
    assets_listed: int = 0
    active_users: int = 0


class WalletBalance(AssetMintModel):
    address: str
    balance_wei: int = 0
    balance_eth: float = 0.0
