"""
Notification Service

Best-effort e-mail alerts for marketplace events, delivered through the
Supabase `send-email` edge function (which relays to SendGrid).

Dispatch never raises: every outcome, including skipped sends, is reported
as a DeliveryResult. Callers treat it as fire-and-forget.
"""

from __future__ import annotations

from html import escape
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from assetmint.models.base import short_wallet
from assetmint.models.notifications import (
    DeliveryResult,
    NotificationKind,
    NotificationMessage,
)

logger = structlog.get_logger(__name__)


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Delivers an addressed notification; failure is reported, not raised."""

    async def send(
        self,
        kind: NotificationKind,
        recipient: str,
        payload: dict[str, Any],
    ) -> DeliveryResult: ...


# =============================================================================
# Templates
# =============================================================================

_BASE_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8" /></head>
<body>
  <div class="wrapper">
    {content}
    <div class="footer">
      <p>{from_name} &middot; You're receiving this because you have an account or active alerts on the platform.</p>
    </div>
  </div>
</body>
</html>
"""


def _highlight(label: str, value: str, sub: str) -> str:
    return (
        '<div class="highlight">'
        f'<div class="label">{label}</div>'
        f'<div class="value">{value}</div>'
        f'<div class="sub">{sub}</div>'
        "</div>"
    )


def render_notification(
    kind: NotificationKind,
    recipient: str,
    payload: dict[str, Any],
    from_name: str = "AssetMint",
) -> NotificationMessage:
    """Render subject and HTML body for a notification kind."""
    asset_name = str(payload.get("asset_name") or payload.get("asset_id") or "your asset")
    name_html = escape(asset_name)

    if kind == NotificationKind.BID_RECEIVED:
        amount = payload.get("amount_eth")
        bidder = short_wallet(str(payload.get("bidder", "")))
        subject = f'New bid of {amount} ETH on "{asset_name}"'
        content = (
            '<div class="header"><h1>New bid on your asset</h1>'
            "<p>Someone placed a bid on your listing</p></div>"
            '<div class="body">'
            f"<p>You just received a new bid on <strong>{name_html}</strong>.</p>"
            + _highlight("Bid Amount", f"{escape(str(amount))} ETH", f"From: {escape(bidder)}")
            + "<p>Log in to review all bids and manage your listing.</p></div>"
        )
    elif kind == NotificationKind.ASSET_SOLD:
        price = payload.get("price_eth")
        buyer = short_wallet(str(payload.get("buyer", "")))
        tx_hash = payload.get("transaction_hash")
        subject = f'Your asset "{asset_name}" sold for {price} ETH'
        tx_line = (
            f'<p class="tx">Transaction: {escape(str(tx_hash)[:20])}...</p>' if tx_hash else ""
        )
        content = (
            '<div class="header"><h1>Your asset sold!</h1>'
            "<p>A buyer just completed a purchase</p></div>"
            '<div class="body">'
            f"<p>Your asset <strong>{name_html}</strong> has been sold.</p>"
            + _highlight("Sale Price", f"{escape(str(price))} ETH", f"Buyer: {escape(buyer)}")
            + tx_line
            + "<p>The funds have been transferred to your connected wallet.</p></div>"
        )
    else:
        raise ValueError(f"Unsupported notification kind: {kind}")

    return NotificationMessage(
        kind=kind,
        recipient=recipient,
        subject=subject,
        html=_BASE_HTML.format(content=content, from_name=escape(from_name)),
        payload=payload,
    )


# =============================================================================
# Dispatcher
# =============================================================================


class EmailNotificationDispatcher:
    """
    Sends notifications as e-mail via the send-email edge function.

    Marketplace identities are wallet addresses; a recipient that is not an
    e-mail address is delivered to fallback_email when one is configured and
    skipped otherwise.
    """

    def __init__(
        self,
        supabase_url: str | None,
        anon_key: str | None,
        from_name: str = "AssetMint",
        fallback_email: str | None = None,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = (
            f"{supabase_url.rstrip('/')}/functions/v1/send-email" if supabase_url else None
        )
        self._anon_key = anon_key
        self._from_name = from_name
        self._fallback_email = fallback_email
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def resolve_address(self, recipient: str) -> str | None:
        if "@" in recipient:
            return recipient
        return self._fallback_email

    async def send(
        self,
        kind: NotificationKind,
        recipient: str,
        payload: dict[str, Any],
    ) -> DeliveryResult:
        if not self._endpoint or not self._anon_key:
            logger.warning("email_not_configured", kind=kind.value)
            return DeliveryResult(success=False, error="Email endpoint not configured")

        address = self.resolve_address(recipient)
        if not address:
            logger.info("email_recipient_unresolved", kind=kind.value, recipient=recipient)
            return DeliveryResult(success=False, error="No deliverable address for recipient")

        message = render_notification(kind, address, payload, from_name=self._from_name)
        logger.info("email_sending", kind=kind.value, subject=message.subject)

        try:
            response = await self._client.post(
                self._endpoint,
                json={"to": address, "subject": message.subject, "html": message.html},
                headers={"Authorization": f"Bearer {self._anon_key}"},
            )
        except httpx.HTTPError as e:
            logger.warning("email_send_failed", kind=kind.value, error=str(e))
            return DeliveryResult(success=False, recipient=address, error=str(e) or "Network error")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error or not body.get("success"):
            error = body.get("error") or f"HTTP {response.status_code}"
            logger.warning("email_send_failed", kind=kind.value, error=error)
            return DeliveryResult(success=False, recipient=address, error=error)

        logger.info("email_sent", kind=kind.value)
        return DeliveryResult(success=True, recipient=address)
