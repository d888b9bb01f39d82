"""
Marketplace API Routes

Mint, bid and purchase mutations, and the cached listing, detail and
stats reads.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from assetmint.api.dependencies import OrchestratorDep, ReadsDep, WalletDep
from assetmint.models.marketplace import (
    AssetCategory,
    AssetRecord,
    BidReceipt,
    BidRequest,
    MintOutcome,
    MintRequest,
    PlatformStats,
    PurchaseReceipt,
    PurchaseRequest,
    SaleType,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/marketplace", tags=["Marketplace"])


# ============================================================================
# Request/Response Models
# ============================================================================

class MintAssetBody(BaseModel):
    """Request to mint an asset; the owner is the calling wallet."""
    image_reference: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    category: AssetCategory
    price: float = Field(gt=0)
    sale_type: SaleType = SaleType.FIXED
    royalty_percent: float = Field(default=0, ge=0, le=100)
    supply: int = Field(default=1, ge=1)


class PlaceBidBody(BaseModel):
    amount_eth: float = Field(gt=0)


class PurchaseBody(BaseModel):
    price_eth: float = Field(gt=0)


class AssetListResponse(BaseModel):
    assets: list[AssetRecord]
    total: int


# ============================================================================
# Mutations
# ============================================================================

@router.post("/assets", response_model=MintOutcome, status_code=status.HTTP_201_CREATED)
async def mint_asset(
    body: MintAssetBody,
    wallet: WalletDep,
    orchestrator: OrchestratorDep,
) -> MintOutcome:
    request = MintRequest(**body.model_dump(), owner_wallet_address=wallet)
    return await orchestrator.mint(request)


@router.post(
    "/assets/{asset_id}/bids",
    response_model=BidReceipt,
    status_code=status.HTTP_201_CREATED,
)
async def place_bid(
    asset_id: str,
    body: PlaceBidBody,
    wallet: WalletDep,
    orchestrator: OrchestratorDep,
) -> BidReceipt:
    request = BidRequest(asset_id=asset_id, bidder_identity=wallet, amount_eth=body.amount_eth)
    return await orchestrator.place_bid(request)


@router.post("/assets/{asset_id}/purchase", response_model=PurchaseReceipt)
async def purchase_asset(
    asset_id: str,
    body: PurchaseBody,
    wallet: WalletDep,
    orchestrator: OrchestratorDep,
) -> PurchaseReceipt:
    request = PurchaseRequest(
        asset_id=asset_id,
        buyer_wallet_address=wallet,
        price_eth=body.price_eth,
    )
    return await orchestrator.purchase_asset(request)


# ============================================================================
# Reads
# ============================================================================

@router.get("/assets", response_model=AssetListResponse)
async def list_assets(reads: ReadsDep) -> AssetListResponse:
    assets = await reads.assets()
    return AssetListResponse(assets=assets, total=len(assets))


@router.get("/assets/{asset_id}", response_model=AssetRecord)
async def get_asset(asset_id: str, reads: ReadsDep) -> AssetRecord:
    return await reads.asset(asset_id)


@router.get("/stats", response_model=PlatformStats)
async def get_platform_stats(reads: ReadsDep) -> PlatformStats:
    return await reads.platform_stats()
