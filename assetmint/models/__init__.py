"""
AssetMint Models

Pydantic models for requests, gateway results and read projections.
"""

from assetmint.models.base import AssetMintModel, FrozenModel, generate_id
from assetmint.models.marketplace import (
    ActivityEvent,
    ActivityType,
    AssetCategory,
    AssetDraft,
    AssetRecord,
    AssetStatus,
    BidOffer,
    BidReceipt,
    BidRequest,
    Blockchain,
    MintOutcome,
    MintRequest,
    PlatformStats,
    PurchaseReceipt,
    PurchaseRequest,
    SaleType,
    WalletBalance,
)
from assetmint.models.notifications import (
    DeliveryResult,
    NotificationKind,
    NotificationMessage,
)

__all__ = [
    "AssetMintModel",
    "FrozenModel",
    "generate_id",
    "ActivityEvent",
    "ActivityType",
    "AssetCategory",
    "AssetDraft",
    "AssetRecord",
    "AssetStatus",
    "BidOffer",
    "BidReceipt",
    "BidRequest",
    "Blockchain",
    "MintOutcome",
    "MintRequest",
    "PlatformStats",
    "PurchaseReceipt",
    "PurchaseRequest",
    "SaleType",
    "WalletBalance",
    "DeliveryResult",
    "NotificationKind",
    "NotificationMessage",
]
