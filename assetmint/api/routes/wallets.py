"""
Wallet API Routes
"""

from __future__ import annotations

from fastapi import APIRouter

from assetmint.api.dependencies import ReadsDep
from assetmint.models.marketplace import WalletBalance

router = APIRouter(prefix="/wallets", tags=["Wallets"])


@router.get("/{address}/balance", response_model=WalletBalance)
async def get_wallet_balance(address: str, reads: ReadsDep) -> WalletBalance:
    """Native balance, cached until it expires or a purchase invalidates it."""
    return await reads.wallet_balance(address)
