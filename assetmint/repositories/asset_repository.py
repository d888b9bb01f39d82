"""
Asset Repository

Persistence gateway contract for asset records, bids and purchases.

Write operations never raise for expected failures; they return a
PersistenceResult that separates a business rejection (the store declined
the write for domain reasons) from an infrastructure failure (the store
could not be reached or errored). Callers decide how each maps to their own
error taxonomy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import structlog

from assetmint.models.marketplace import (
    AssetDraft,
    AssetRecord,
    BidReceipt,
    PlatformStats,
    PurchaseReceipt,
)

T = TypeVar("T")


class PersistenceStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"  # Business rule declined the write
    FAILED = "failed"      # Infrastructure error, nothing written


@dataclass(frozen=True)
class PersistenceResult(Generic[T]):
    """Outcome of a single durable write."""

    status: PersistenceStatus
    value: T | None = None
    message: str = ""

    @classmethod
    def accepted(cls, value: T) -> PersistenceResult[T]:
        return cls(status=PersistenceStatus.ACCEPTED, value=value)

    @classmethod
    def rejected(cls, message: str) -> PersistenceResult[T]:
        return cls(status=PersistenceStatus.REJECTED, message=message)

    @classmethod
    def failed(cls, message: str) -> PersistenceResult[T]:
        return cls(status=PersistenceStatus.FAILED, message=message)

    @property
    def ok(self) -> bool:
        return self.status == PersistenceStatus.ACCEPTED


class AssetRepository(ABC):
    """
    Durable store for asset records, bids and purchases.

    Implementations own per-asset write ordering and conflict resolution
    (for example two concurrent bids on one asset); each write is atomic.
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_asset(self, draft: AssetDraft) -> PersistenceResult[str]:
        """Create the asset record; the accepted value is the new asset id."""

    @abstractmethod
    async def place_bid(
        self, asset_id: str, bidder: str, amount_eth: float
    ) -> PersistenceResult[BidReceipt]:
        """Record a bid on an asset."""

    @abstractmethod
    async def purchase_asset(
        self, asset_id: str, buyer: str, price_eth: float
    ) -> PersistenceResult[PurchaseReceipt]:
        """Settle a purchase and transfer ownership to the buyer."""

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_assets(self) -> list[AssetRecord]:
        """All assets, newest first."""

    @abstractmethod
    async def get_asset(self, asset_id: str) -> AssetRecord | None:
        """One asset with its bids and activity, or None."""

    @abstractmethod
    async def get_platform_stats(self) -> PlatformStats:
        """Aggregate marketplace statistics."""

    async def close(self) -> None:
        """Release any held connections."""
        return None
