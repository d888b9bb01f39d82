"""
Tests for the Notification Service.

Tests cover:
- Template rendering and escaping
- Recipient resolution
- Delivery through the send-email edge function
- Non-raising failure reporting
"""

import json

import httpx
import pytest

from assetmint.models.notifications import NotificationKind
from assetmint.services.notifications import (
    EmailNotificationDispatcher,
    NotificationDispatcher,
    render_notification,
)
from tests.conftest import BIDDER, BUYER, OWNER

SUPABASE_URL = "https://project.supabase.co"


def make_dispatcher(handler, fallback_email="alerts@example.com", anon_key="anon"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EmailNotificationDispatcher(
        supabase_url=SUPABASE_URL,
        anon_key=anon_key,
        fallback_email=fallback_email,
        http_client=client,
    )


class TestRendering:

    def test_bid_received(self):
        message = render_notification(
            NotificationKind.BID_RECEIVED,
            "owner@example.com",
            {"asset_name": "Aurora #7", "amount_eth": 1.5, "bidder": BIDDER},
        )

        assert message.subject == 'New bid of 1.5 ETH on "Aurora #7"'
        assert "0xbee0...0003" in message.html
        assert "1.5 ETH" in message.html

    def test_asset_sold_with_transaction(self):
        tx = "0x" + "f" * 64
        message = render_notification(
            NotificationKind.ASSET_SOLD,
            "owner@example.com",
            {"asset_name": "Aurora #7", "price_eth": 3.2, "buyer": BUYER, "transaction_hash": tx},
        )

        assert message.subject == 'Your asset "Aurora #7" sold for 3.2 ETH'
        assert f"Transaction: {tx[:20]}..." in message.html

    def test_asset_sold_without_transaction(self):
        message = render_notification(
            NotificationKind.ASSET_SOLD,
            "owner@example.com",
            {"asset_name": "Aurora #7", "price_eth": 3.2, "buyer": BUYER},
        )

        assert "Transaction:" not in message.html

    def test_values_are_escaped(self):
        message = render_notification(
            NotificationKind.BID_RECEIVED,
            "owner@example.com",
            {"asset_name": "<script>x</script>", "amount_eth": 1, "bidder": BIDDER},
        )

        assert "<script>" not in message.html
        assert "&lt;script&gt;" in message.html


class TestEmailNotificationDispatcher:

    @pytest.mark.asyncio
    async def test_sends_to_edge_function(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        dispatcher = make_dispatcher(handler)

        result = await dispatcher.send(
            NotificationKind.BID_RECEIVED,
            "owner@example.com",
            {"asset_name": "Aurora #7", "amount_eth": 1.5, "bidder": BIDDER},
        )

        assert result.success
        assert result.recipient == "owner@example.com"
        request = seen[0]
        assert str(request.url) == f"{SUPABASE_URL}/functions/v1/send-email"
        assert request.headers["authorization"] == "Bearer anon"
        body = json.loads(request.content)
        assert body["to"] == "owner@example.com"
        assert body["subject"].startswith("New bid")
        assert "<html>" in body["html"]

    @pytest.mark.asyncio
    async def test_wallet_recipient_uses_fallback(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        result = await make_dispatcher(handler).send(
            NotificationKind.ASSET_SOLD, OWNER, {"asset_name": "A", "price_eth": 1, "buyer": BUYER}
        )

        assert result.success
        assert seen[0]["to"] == "alerts@example.com"

    @pytest.mark.asyncio
    async def test_wallet_recipient_without_fallback_is_skipped(self):
        calls = []
        dispatcher = make_dispatcher(lambda r: calls.append(r), fallback_email=None)

        result = await dispatcher.send(NotificationKind.ASSET_SOLD, OWNER, {})

        assert not result.success
        assert calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_endpoint_is_skipped(self):
        dispatcher = EmailNotificationDispatcher(supabase_url=None, anon_key=None)

        result = await dispatcher.send(NotificationKind.ASSET_SOLD, "a@b.c", {})

        assert not result.success
        assert "not configured" in result.error

    @pytest.mark.asyncio
    async def test_edge_function_error_reported(self):
        dispatcher = make_dispatcher(
            lambda r: httpx.Response(500, json={"success": False, "error": "SendGrid 403"})
        )

        result = await dispatcher.send(
            NotificationKind.BID_RECEIVED, "a@b.c", {"amount_eth": 1, "bidder": BIDDER}
        )

        assert not result.success
        assert result.error == "SendGrid 403"

    @pytest.mark.asyncio
    async def test_transport_error_reported(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        result = await make_dispatcher(handler).send(
            NotificationKind.BID_RECEIVED, "a@b.c", {"amount_eth": 1, "bidder": BIDDER}
        )

        assert not result.success
        assert result.error == "read timed out"


def test_email_dispatcher_satisfies_protocol():
    assert isinstance(EmailNotificationDispatcher(None, None), NotificationDispatcher)
