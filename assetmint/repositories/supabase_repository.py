"""
Supabase Asset Repository

Persistence gateway backed by a Supabase (PostgREST) project over HTTPS.

Tables used: assets, bids, transactions, activities, notifications,
platform_stats. Each write operation has exactly one load-bearing insert
(assets, bids or transactions); the activity rows, in-app notification rows
and the ownership update that follow it are best-effort and only logged on
failure.

Response classification:
- transport errors, 401/403 and 5xx            -> FAILED
- 400/404/409/422, SQLSTATE class 23 or P0001   -> REJECTED
"""

from __future__ import annotations

from typing import Any

import httpx

from assetmint.models.base import parse_timestamp, utc_now
from assetmint.models.marketplace import (
    ActivityEvent,
    ActivityType,
    AssetCategory,
    AssetDraft,
    AssetRecord,
    AssetStatus,
    BidOffer,
    BidReceipt,
    Blockchain,
    PlatformStats,
    PurchaseReceipt,
    SaleType,
)
from assetmint.monitoring.logging import log_duration
from assetmint.repositories.asset_repository import AssetRepository, PersistenceResult
from assetmint.services.identifiers import IdentifierIssuer, SyntheticIdentifierIssuer

REJECTION_STATUS_CODES = {400, 404, 409, 422}
REJECTION_SQLSTATE_PREFIXES = ("23", "P0001")


def classify_error_response(response: httpx.Response) -> PersistenceResult[Any]:
    """Map a non-2xx PostgREST response to a rejection or a failure."""
    code = ""
    message = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("code") or "")
        message = str(body.get("message") or body.get("error") or message)

    if code.startswith(REJECTION_SQLSTATE_PREFIXES):
        return PersistenceResult.rejected(message)
    if response.status_code in REJECTION_STATUS_CODES:
        return PersistenceResult.rejected(message)
    return PersistenceResult.failed(message)


class SupabaseAssetRepository(AssetRepository):
    """PostgREST client implementing the persistence gateway."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        eth_usd_rate: float = 3200.0,
        timeout_seconds: float = 30.0,
        identifier_issuer: IdentifierIssuer | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._api_key = api_key
        self._eth_usd_rate = eth_usd_rate
        self._issuer = identifier_issuer or SyntheticIdentifierIssuer()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        with log_duration(self.logger, "supabase_request", method=method, table=table) as timing:
            response = await self._client.request(
                method,
                f"{self._rest_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
            timing["status_code"] = response.status_code
        return response

    async def _insert_best_effort(self, table: str, row: dict[str, Any]) -> None:
        try:
            response = await self._request("POST", table, json=row)
            if response.is_error:
                self.logger.warning(
                    "supabase_secondary_write_failed",
                    table=table,
                    status_code=response.status_code,
                )
        except httpx.HTTPError as e:
            self.logger.warning("supabase_secondary_write_failed", table=table, error=str(e))

    async def _record_activity(
        self,
        asset_id: str,
        activity_type: ActivityType,
        from_address: str,
        to_address: str,
        price: float | None = None,
    ) -> None:
        row: dict[str, Any] = {
            "asset_id": asset_id,
            "type": activity_type.value,
            "from_address": from_address,
            "to_address": to_address,
        }
        if price is not None:
            row["price"] = price
        await self._insert_best_effort("activities", row)

    async def _record_notification(
        self, user_id: str, kind: str, title: str, message: str, asset_id: str
    ) -> None:
        await self._insert_best_effort(
            "notifications",
            {
                "user_id": user_id,
                "type": kind,
                "title": title,
                "message": message,
                "read": False,
                "asset_id": asset_id,
            },
        )

    async def _lookup_name_and_owner(self, asset_id: str) -> tuple[str, str | None]:
        """Best-effort lookup used to address follow-up notifications."""
        try:
            response = await self._request(
                "GET",
                "assets",
                params={"select": "name,owner_id", "id": f"eq.{asset_id}", "limit": "1"},
            )
            if response.is_success:
                rows = response.json()
                if rows:
                    return rows[0].get("name") or "Asset", rows[0].get("owner_id")
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("supabase_asset_lookup_failed", asset_id=asset_id, error=str(e))
        return "Asset", None

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_asset(self, draft: AssetDraft) -> PersistenceResult[str]:
        row = {
            "name": draft.name,
            "description": draft.description,
            "image": draft.image,
            "category": draft.category.value,
            "price": draft.price,
            "price_usd": round(draft.price * self._eth_usd_rate, 2),
            "owner_id": draft.owner_wallet_address,
            "creator_id": draft.owner_wallet_address,
            "token_id": draft.token_id,
            "contract_address": draft.contract_address,
            "blockchain": draft.blockchain.value,
            "token_standard": draft.token_standard,
            "status": draft.status.value,
            "sale_type": draft.sale_type.value,
            "royalty": draft.royalty_percent,
            "supply": draft.supply,
            "ipfs_hash": draft.metadata_content_hash,
            "image_ipfs_hash": draft.image_content_hash,
            "metadata_uri": draft.metadata_url,
            "views": 0,
            "favorites": 0,
            "listed_at": utc_now().isoformat(),
        }

        try:
            response = await self._request(
                "POST", "assets", json=row, prefer="return=representation"
            )
        except httpx.HTTPError as e:
            self.logger.error("supabase_create_asset_failed", error=str(e))
            return PersistenceResult.failed(str(e) or "Network error creating asset")

        if response.is_error:
            result: PersistenceResult[str] = classify_error_response(response)
            self.logger.error(
                "supabase_create_asset_failed",
                status_code=response.status_code,
                error=result.message,
            )
            return result

        try:
            created = response.json()
            asset_id = str(created[0]["id"] if isinstance(created, list) else created["id"])
        except (ValueError, KeyError, IndexError, TypeError):
            return PersistenceResult.failed("Asset created but no id was returned")

        self.logger.info("supabase_asset_created", asset_id=asset_id)
        await self._record_activity(
            asset_id,
            ActivityType.MINTED,
            "NullAddress",
            draft.owner_wallet_address,
            draft.price,
        )
        return PersistenceResult.accepted(asset_id)

    async def place_bid(
        self, asset_id: str, bidder: str, amount_eth: float
    ) -> PersistenceResult[BidReceipt]:
        amount_usd = round(amount_eth * self._eth_usd_rate, 2)
        try:
            response = await self._request(
                "POST",
                "bids",
                json={
                    "asset_id": asset_id,
                    "bidder_id": bidder,
                    "amount": amount_eth,
                    "amount_usd": amount_usd,
                },
                prefer="return=representation",
            )
        except httpx.HTTPError as e:
            self.logger.error("supabase_place_bid_failed", asset_id=asset_id, error=str(e))
            return PersistenceResult.failed(str(e) or "Network error placing bid")

        if response.is_error:
            result: PersistenceResult[BidReceipt] = classify_error_response(response)
            self.logger.warning(
                "supabase_place_bid_declined",
                asset_id=asset_id,
                status=result.status.value,
                error=result.message,
            )
            return result

        bid_row: dict[str, Any] = {}
        try:
            body = response.json()
            if isinstance(body, list) and body:
                bid_row = body[0]
        except ValueError:
            pass

        await self._record_activity(asset_id, ActivityType.BID, bidder, "Marketplace", amount_eth)
        asset_name, owner = await self._lookup_name_and_owner(asset_id)
        await self._record_notification(
            owner or "system",
            "bid",
            "New Bid Received",
            f"A bid of {amount_eth} ETH was placed on {asset_name}",
            asset_id,
        )

        receipt = BidReceipt(
            asset_id=asset_id,
            bidder=bidder,
            amount_eth=amount_eth,
            amount_usd=amount_usd,
            asset_name=asset_name,
            asset_owner=owner,
        )
        if bid_row.get("id"):
            receipt.bid_id = str(bid_row["id"])
        if bid_row.get("created_at"):
            receipt.created_at = parse_timestamp(bid_row["created_at"])
        return PersistenceResult.accepted(receipt)

    async def purchase_asset(
        self, asset_id: str, buyer: str, price_eth: float
    ) -> PersistenceResult[PurchaseReceipt]:
        asset_name, owner = await self._lookup_name_and_owner(asset_id)
        seller = owner or "marketplace"
        tx_hash = self._issuer.issue_transaction_hash()

        try:
            response = await self._request(
                "POST",
                "transactions",
                json={
                    "type": "Buy",
                    "asset_id": asset_id,
                    "from_address": seller,
                    "to_address": buyer,
                    "price": price_eth,
                    "status": "completed",
                    "tx_hash": tx_hash,
                },
            )
        except httpx.HTTPError as e:
            self.logger.error("supabase_purchase_failed", asset_id=asset_id, error=str(e))
            return PersistenceResult.failed(str(e) or "Network error during purchase")

        if response.is_error:
            result: PersistenceResult[PurchaseReceipt] = classify_error_response(response)
            self.logger.warning(
                "supabase_purchase_declined",
                asset_id=asset_id,
                status=result.status.value,
                error=result.message,
            )
            return result

        self.logger.info("supabase_purchase_recorded", asset_id=asset_id, tx_hash=tx_hash)
        await self._record_activity(asset_id, ActivityType.SOLD, seller, buyer, price_eth)

        try:
            update = await self._request(
                "PATCH",
                "assets",
                params={"id": f"eq.{asset_id}"},
                json={"owner_id": buyer, "status": AssetStatus.BUY_NOW.value},
            )
            if update.is_error:
                self.logger.warning(
                    "supabase_ownership_update_failed",
                    asset_id=asset_id,
                    status_code=update.status_code,
                )
        except httpx.HTTPError as e:
            self.logger.warning("supabase_ownership_update_failed", asset_id=asset_id, error=str(e))

        if owner:
            await self._record_notification(
                owner,
                "sale",
                "Asset Sold!",
                f'Your asset "{asset_name}" was sold for {price_eth} ETH',
                asset_id,
            )
        await self._record_notification(
            buyer,
            "purchase",
            "Purchase Complete",
            f'You purchased "{asset_name}" for {price_eth} ETH',
            asset_id,
        )

        return PersistenceResult.accepted(
            PurchaseReceipt(
                asset_id=asset_id,
                asset_name=asset_name,
                buyer=buyer,
                seller=owner,
                price_eth=price_eth,
                transaction_hash=tx_hash,
            )
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_assets(self) -> list[AssetRecord]:
        response = await self._request(
            "GET",
            "assets",
            params={"select": "*,bids(*),activities(*)", "order": "created_at.desc"},
        )
        response.raise_for_status()
        return [self._row_to_record(row) for row in response.json()]

    async def get_asset(self, asset_id: str) -> AssetRecord | None:
        response = await self._request(
            "GET",
            "assets",
            params={"select": "*,bids(*),activities(*)", "id": f"eq.{asset_id}", "limit": "1"},
        )
        response.raise_for_status()
        rows = response.json()
        return self._row_to_record(rows[0]) if rows else None

    async def get_platform_stats(self) -> PlatformStats:
        response = await self._request(
            "GET", "platform_stats", params={"select": "*", "limit": "1"}
        )
        response.raise_for_status()
        rows = response.json()
        if not rows:
            return PlatformStats()
        row = rows[0]
        return PlatformStats(
            total_volume=row.get("total_volume") or 0.0,
            assets_listed=row.get("assets_listed") or 0,
            active_users=row.get("active_users") or 0,
        )

    def _row_to_record(self, row: dict[str, Any]) -> AssetRecord:
        bids = [
            BidOffer(
                id=str(b["id"]),
                bidder=b.get("bidder_id") or "",
                amount=b.get("amount") or 0.0,
                amount_usd=b.get("amount_usd") or 0.0,
                created_at=parse_timestamp(b.get("created_at")),
            )
            for b in row.get("bids") or []
        ]
        activity = [
            ActivityEvent(
                id=str(a["id"]),
                type=ActivityType(a["type"]),
                from_address=a.get("from_address") or "",
                to_address=a.get("to_address") or "",
                price=a.get("price"),
                created_at=parse_timestamp(a.get("created_at")),
            )
            for a in row.get("activities") or []
            if a.get("type") in ActivityType._value2member_map_
        ]
        activity.sort(key=lambda a: a.created_at, reverse=True)

        return AssetRecord(
            id=str(row["id"]),
            name=row.get("name") or "",
            description=row.get("description") or "",
            image=row.get("image") or "",
            category=AssetCategory(row.get("category") or AssetCategory.ART.value),
            price=row.get("price") or 0.0,
            price_usd=row.get("price_usd") or 0.0,
            owner=row.get("owner_id"),
            creator=row.get("creator_id"),
            token_id=str(row.get("token_id") or ""),
            contract_address=row.get("contract_address") or "",
            blockchain=Blockchain(row.get("blockchain") or Blockchain.ETHEREUM.value),
            token_standard=row.get("token_standard") or "ERC-721",
            status=AssetStatus(row.get("status") or AssetStatus.NEW.value),
            sale_type=SaleType(row.get("sale_type") or SaleType.FIXED.value),
            royalty_percent=row.get("royalty") or 0.0,
            supply=row.get("supply") or 1,
            metadata_content_hash=row.get("ipfs_hash") or "",
            image_content_hash=row.get("image_ipfs_hash") or "",
            views=row.get("views") or 0,
            favorites=row.get("favorites") or 0,
            listed_at=parse_timestamp(row.get("listed_at") or row.get("created_at")),
            bids=bids,
            activity=activity,
        )
