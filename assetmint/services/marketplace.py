"""
Marketplace Service

Orchestrates the three asset-lifecycle mutations (mint, bid, purchase)
across content storage, persistence and notification gateways.

Failure policy:
- content storage failures degrade the mint and never abort it
- persistence failures abort the operation with a typed error
- notification failures are logged from a detached task and never reach
  the caller

Every successful mutation invalidates the read keys it made stale before it
returns, so a caller that awaits the mutation and then reads observes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from assetmint.kernel.pipeline import Stage, StageFailedError, StagePipeline
from assetmint.kernel.task_queue import TaskQueue
from assetmint.models.marketplace import (
    AssetDraft,
    BidReceipt,
    BidRequest,
    MintOutcome,
    MintRequest,
    PurchaseReceipt,
    PurchaseRequest,
)
from assetmint.models.notifications import NotificationKind
from assetmint.repositories.asset_repository import (
    AssetRepository,
    PersistenceResult,
    PersistenceStatus,
)
from assetmint.resilience.caching.cache_invalidation import CacheInvalidator, CacheKeys
from assetmint.services.content_storage import ContentStorageGateway
from assetmint.services.identifiers import IdentifierIssuer, SyntheticIdentifierIssuer
from assetmint.services.notifications import NotificationDispatcher

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Errors
# =============================================================================


class MarketplaceError(Exception):
    """Base class for errors surfaced by marketplace operations."""

    def __init__(self, message: str, operation: str = ""):
        self.message = message
        self.operation = operation
        super().__init__(message)


class PersistenceError(MarketplaceError):
    """The durable write did not happen."""

    def __init__(self, message: str, operation: str = "", rejected: bool = False):
        super().__init__(message, operation)
        self.rejected = rejected


class OperationRejected(MarketplaceError):
    """The persistence gateway declined the write for domain reasons."""


class BidRejected(OperationRejected):
    pass


class PurchaseRejected(OperationRejected):
    pass


class AssetNotFoundError(MarketplaceError):
    def __init__(self, asset_id: str):
        super().__init__(f"Asset {asset_id} not found", "read")
        self.asset_id = asset_id


# =============================================================================
# Mint pipeline
# =============================================================================


@dataclass
class MintContext:
    """State threaded through the mint stages."""

    request: MintRequest
    image: str
    image_content_hash: str = ""
    metadata_content_hash: str = ""
    metadata_url: str = ""
    token_id: str = ""
    contract_address: str = ""
    asset_id: str = ""


def build_metadata_document(ctx: MintContext) -> dict[str, Any]:
    """Token metadata embedding the current image reference."""
    request = ctx.request
    return {
        "name": request.name,
        "description": request.description,
        "image": ctx.image,
        "attributes": [
            {"trait_type": "Category", "value": request.category.value},
            {"trait_type": "Royalty", "value": request.royalty_percent},
            {"trait_type": "Supply", "value": request.supply},
        ],
    }


class MarketplaceOrchestrator:
    """
    Mutation orchestrator for mint, place_bid and purchase_asset.

    Business rules (bid floors, ownership, listing price) belong to the
    persistence gateway; this class only propagates its verdict.
    """

    def __init__(
        self,
        content_storage: ContentStorageGateway,
        repository: AssetRepository,
        notifier: NotificationDispatcher,
        invalidator: CacheInvalidator,
        identifier_issuer: IdentifierIssuer | None = None,
        task_queue: TaskQueue | None = None,
    ):
        self._storage = content_storage
        self._repository = repository
        self._notifier = notifier
        self._invalidator = invalidator
        self._issuer = identifier_issuer or SyntheticIdentifierIssuer()
        self._tasks = task_queue or TaskQueue("notifications")

        self._mint_pipeline: StagePipeline[MintContext] = StagePipeline(
            "mint",
            [
                Stage("upload_image", self._upload_image, required=False),
                Stage("upload_metadata", self._upload_metadata, required=False),
                Stage("record_asset", self._record_asset, required=True),
            ],
        )

    @property
    def task_queue(self) -> TaskQueue:
        return self._tasks

    # =========================================================================
    # Mint
    # =========================================================================

    async def mint(self, request: MintRequest) -> MintOutcome:
        """
        Upload the asset file and metadata, then create the asset record.

        Raises:
            PersistenceError: the asset record was not written. ``rejected``
                is True when the store declined it for domain reasons.
        """
        logger.info("mint_started", name=request.name, owner=request.owner_wallet_address)
        ctx = MintContext(request=request, image=request.image_reference)

        result = await self._mint_pipeline.run(ctx)

        await self._invalidator.invalidate(CacheKeys.for_mint(), operation="mint")

        outcome = MintOutcome(
            asset_id=ctx.asset_id,
            token_id=ctx.token_id,
            contract_address=ctx.contract_address,
            content_hash=ctx.metadata_content_hash,
            image_content_hash=ctx.image_content_hash,
            transaction_hash=self._issuer.issue_transaction_hash(),
            image_url=ctx.image,
            metadata_url=ctx.metadata_url,
            degraded_stages=result.degraded,
        )
        logger.info(
            "mint_completed",
            asset_id=outcome.asset_id,
            token_id=outcome.token_id,
            degraded=outcome.degraded_stages,
        )
        return outcome

    async def _upload_image(self, ctx: MintContext) -> None:
        upload = await self._storage.upload_file(ctx.request.image_reference, ctx.request.file_slug)
        if not upload.success or not upload.content_hash:
            raise StageFailedError("upload_image", upload.error or "no content id returned")
        ctx.image = upload.url or ctx.image
        ctx.image_content_hash = upload.content_hash

    async def _upload_metadata(self, ctx: MintContext) -> None:
        upload = await self._storage.upload_metadata(build_metadata_document(ctx))
        if not upload.success or not upload.content_hash:
            raise StageFailedError("upload_metadata", upload.error or "no content id returned")
        ctx.metadata_content_hash = upload.content_hash
        ctx.metadata_url = upload.url or ""

    async def _record_asset(self, ctx: MintContext) -> None:
        request = ctx.request
        ctx.token_id = self._issuer.issue_token_id()
        ctx.contract_address = self._issuer.issue_contract_address()

        draft = AssetDraft(
            name=request.name,
            description=request.description,
            image=ctx.image,
            category=request.category,
            price=request.price,
            sale_type=request.sale_type,
            royalty_percent=request.royalty_percent,
            supply=request.supply,
            owner_wallet_address=request.owner_wallet_address,
            token_id=ctx.token_id,
            contract_address=ctx.contract_address,
            metadata_content_hash=ctx.metadata_content_hash,
            metadata_url=ctx.metadata_url,
            image_content_hash=ctx.image_content_hash,
        )
        result = await self._persist("mint", lambda: self._repository.create_asset(draft))

        if result.status == PersistenceStatus.ACCEPTED and result.value:
            ctx.asset_id = result.value
            return
        if result.status == PersistenceStatus.ACCEPTED:
            raise PersistenceError("Persistence returned no asset id", "mint")
        raise PersistenceError(
            result.message or "Failed to create asset",
            "mint",
            rejected=result.status == PersistenceStatus.REJECTED,
        )

    # =========================================================================
    # Bid
    # =========================================================================

    async def place_bid(self, request: BidRequest) -> BidReceipt:
        """
        Record a bid, invalidate the asset and listing keys, notify the owner.

        Raises:
            BidRejected: the store declined the bid.
            PersistenceError: the store could not record it.
        """
        result = await self._persist(
            "place_bid",
            lambda: self._repository.place_bid(
                request.asset_id, request.bidder_identity, request.amount_eth
            ),
        )
        receipt = self._unwrap("place_bid", result, BidRejected)

        await self._invalidator.invalidate(
            CacheKeys.for_bid(request.asset_id), operation="place_bid"
        )
        logger.info(
            "bid_placed",
            asset_id=request.asset_id,
            bidder=request.bidder_identity,
            amount_eth=request.amount_eth,
        )

        if receipt.asset_owner:
            self._notify(
                "bid",
                NotificationKind.BID_RECEIVED,
                receipt.asset_owner,
                {
                    "asset_id": receipt.asset_id,
                    "asset_name": receipt.asset_name,
                    "amount_eth": receipt.amount_eth,
                    "bidder": receipt.bidder,
                },
            )
        return receipt

    # =========================================================================
    # Purchase
    # =========================================================================

    async def purchase_asset(self, request: PurchaseRequest) -> PurchaseReceipt:
        """
        Settle a purchase, invalidate asset, listing and balance keys, notify
        the seller with the settlement transaction.

        Raises:
            PurchaseRejected: the store declined the purchase.
            PersistenceError: the store could not settle it.
        """
        result = await self._persist(
            "purchase_asset",
            lambda: self._repository.purchase_asset(
                request.asset_id, request.buyer_wallet_address, request.price_eth
            ),
        )
        receipt = self._unwrap("purchase_asset", result, PurchaseRejected)

        await self._invalidator.invalidate(
            CacheKeys.for_purchase(request.asset_id), operation="purchase_asset"
        )
        logger.info(
            "asset_purchased",
            asset_id=request.asset_id,
            buyer=request.buyer_wallet_address,
            price_eth=request.price_eth,
            transaction_hash=receipt.transaction_hash,
        )

        if receipt.seller:
            self._notify(
                "sold",
                NotificationKind.ASSET_SOLD,
                receipt.seller,
                {
                    "asset_id": receipt.asset_id,
                    "asset_name": receipt.asset_name,
                    "price_eth": receipt.price_eth,
                    "buyer": receipt.buyer,
                    "transaction_hash": receipt.transaction_hash,
                },
            )
        return receipt

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _persist(
        self,
        operation: str,
        call: Callable[[], Awaitable[PersistenceResult[T]]],
    ) -> PersistenceResult[T]:
        """Run a gateway write; an escaping exception counts as FAILED."""
        try:
            return await call()
        except Exception as e:
            logger.error("persistence_call_failed", operation=operation, error=str(e))
            return PersistenceResult.failed(str(e) or type(e).__name__)

    def _unwrap(
        self,
        operation: str,
        result: PersistenceResult[T],
        rejected_error: type[OperationRejected],
    ) -> T:
        if result.status == PersistenceStatus.ACCEPTED and result.value is not None:
            return result.value
        if result.status == PersistenceStatus.REJECTED:
            logger.info(f"{operation}_rejected", reason=result.message)
            raise rejected_error(result.message or "Operation rejected", operation)
        logger.warning(f"{operation}_failed", error=result.message)
        raise PersistenceError(result.message or "Persistence failed", operation)

    def _notify(
        self,
        label: str,
        kind: NotificationKind,
        recipient: str,
        payload: dict[str, Any],
    ) -> None:
        """Dispatch without awaiting; failures are logged by the task."""
        if self._tasks.closed:
            logger.warning(f"{label}_notification_skipped", recipient=recipient)
            return

        async def deliver() -> None:
            try:
                delivery = await self._notifier.send(kind, recipient, payload)
            except Exception as e:
                logger.warning(f"{label}_notification_failed", recipient=recipient, error=str(e))
                return
            if not delivery.success:
                logger.warning(
                    f"{label}_notification_failed", recipient=recipient, error=delivery.error
                )

        self._tasks.spawn(deliver(), name=f"notify-{kind.value}")
