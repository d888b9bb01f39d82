"""
Billing API Routes

Hosted subscription checkout. The client is redirected to the returned
session URL; no card data reaches this service.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from assetmint.api.dependencies import CheckoutDep, WalletDep
from assetmint.services.checkout import CheckoutPlan, CheckoutSession, PaymentVerification

router = APIRouter(prefix="/billing", tags=["Billing"])


class CheckoutBody(BaseModel):
    plan: CheckoutPlan
    email: str | None = None


class VerifyBody(BaseModel):
    session_id: str = Field(min_length=1)


@router.post("/checkout", response_model=CheckoutSession)
async def create_checkout(
    body: CheckoutBody,
    wallet: WalletDep,
    checkout: CheckoutDep,
) -> CheckoutSession:
    session = await checkout.create_session(body.plan, wallet, body.email)
    if not session.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=session.error or "Failed to create checkout session",
        )
    return session


@router.post("/verify", response_model=PaymentVerification)
async def verify_checkout(
    body: VerifyBody,
    wallet: WalletDep,
    checkout: CheckoutDep,
) -> PaymentVerification:
    return await checkout.verify_payment(body.session_id, wallet)
