"""
Checkout Service

Hosted subscription checkout through the create-payment and verify-payment
edge functions. Card data never passes through this service; it only
obtains a session URL and later asks whether that session was paid.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import httpx
import structlog

from assetmint.models.base import AssetMintModel

logger = structlog.get_logger(__name__)


class CheckoutPlan(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class CheckoutSession(AssetMintModel):
    success: bool
    session_url: str | None = None
    session_id: str | None = None
    error: str | None = None


class PaymentVerification(AssetMintModel):
    success: bool
    is_paid: bool = False
    plan: CheckoutPlan | None = None
    error: str | None = None


class CheckoutService:
    """Client for the hosted checkout edge functions."""

    def __init__(
        self,
        supabase_url: str | None,
        anon_key: str | None = None,
        timeout_seconds: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._functions_url = (
            f"{supabase_url.rstrip('/')}/functions/v1" if supabase_url else None
        )
        self._anon_key = anon_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    @property
    def configured(self) -> bool:
        return self._functions_url is not None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _invoke(self, function: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._anon_key}"} if self._anon_key else {}
        response = await self._client.post(
            f"{self._functions_url}/{function}", json=body, headers=headers
        )
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def create_session(
        self,
        plan: CheckoutPlan,
        wallet_address: str,
        email: str | None = None,
    ) -> CheckoutSession:
        if not self.configured:
            logger.warning("checkout_not_configured")
            return CheckoutSession(success=False, error="Payment service not configured")

        logger.info("checkout_session_creating", plan=plan.value, wallet=wallet_address)
        try:
            data = await self._invoke(
                "create-payment",
                {"plan": plan.value, "walletAddress": wallet_address, "userEmail": email},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("checkout_session_failed", error=str(e))
            return CheckoutSession(success=False, error="Network error. Please try again.")

        if not data.get("success"):
            error = data.get("error") or "Failed to create checkout session"
            logger.warning("checkout_session_failed", error=error)
            return CheckoutSession(success=False, error=error)

        logger.info("checkout_session_created", session_id=data.get("sessionId"))
        return CheckoutSession(
            success=True,
            session_url=data.get("sessionUrl"),
            session_id=data.get("sessionId"),
        )

    async def verify_payment(self, session_id: str, wallet_address: str) -> PaymentVerification:
        if not self.configured:
            return PaymentVerification(success=False, error="Payment service not configured")

        try:
            data = await self._invoke(
                "verify-payment",
                {"sessionId": session_id, "walletAddress": wallet_address},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("payment_verification_failed", session_id=session_id, error=str(e))
            return PaymentVerification(success=False, error="Could not verify payment")

        if not data.get("success"):
            logger.warning("payment_verification_failed", session_id=session_id, error=data.get("error"))
            return PaymentVerification(success=False, error=data.get("error"))

        plan = data.get("plan")
        logger.info("payment_verified", session_id=session_id, is_paid=bool(data.get("isPaid")))
        return PaymentVerification(
            success=True,
            is_paid=bool(data.get("isPaid")),
            plan=CheckoutPlan(plan) if plan in ("monthly", "annual") else None,
        )
