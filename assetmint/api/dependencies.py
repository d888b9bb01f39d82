"""
AssetMint - FastAPI Dependencies

Access to the application container's collaborators and the caller's
wallet identity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from assetmint.services.checkout import CheckoutService
from assetmint.services.marketplace import MarketplaceOrchestrator
from assetmint.services.reads import MarketplaceReads

if TYPE_CHECKING:
    from assetmint.api.app import MarketplaceApp


# =============================================================================
# Container Access
# =============================================================================

def get_container(request: Request) -> MarketplaceApp:
    """Get the initialized application container from app state."""
    container = getattr(request.app.state, "container", None)
    if container is None or not container.is_ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application not initialized",
        )
    return container


def get_orchestrator(request: Request) -> MarketplaceOrchestrator:
    orchestrator = get_container(request).orchestrator
    assert orchestrator is not None
    return orchestrator


def get_reads(request: Request) -> MarketplaceReads:
    reads = get_container(request).reads
    assert reads is not None
    return reads


def get_checkout(request: Request) -> CheckoutService:
    checkout = get_container(request).checkout
    assert checkout is not None
    return checkout


OrchestratorDep = Annotated[MarketplaceOrchestrator, Depends(get_orchestrator)]
ReadsDep = Annotated[MarketplaceReads, Depends(get_reads)]
CheckoutDep = Annotated[CheckoutService, Depends(get_checkout)]


# =============================================================================
# Caller Identity
# =============================================================================

def get_wallet_address(
    x_wallet_address: Annotated[str | None, Header()] = None,
) -> str:
    """The caller's wallet address; there is no session model beyond this header."""
    wallet = (x_wallet_address or "").strip()
    if not wallet:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Wallet-Address header required",
        )
    return wallet


WalletDep = Annotated[str, Depends(get_wallet_address)]
