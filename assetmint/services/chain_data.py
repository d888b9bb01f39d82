"""
Chain Data Service

Read-only ledger queries over an Alchemy JSON-RPC endpoint. Used by the read
side for wallet balances; nothing here builds or signs transactions.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from assetmint.models.base import AssetMintModel
from assetmint.models.marketplace import WalletBalance

logger = structlog.get_logger(__name__)

WEI_PER_ETH = 10**18


class ChainConnectionTest(AssetMintModel):
    configured: bool
    connected: bool
    block_number: int | None = None
    latency_ms: float | None = None
    error: str | None = None


class ChainDataError(Exception):
    """JSON-RPC call failed or returned no result."""


class AlchemyChainData:
    """Minimal JSON-RPC client for balance and block height."""

    def __init__(
        self,
        rpc_url: str | None,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    @property
    def configured(self) -> bool:
        return bool(self._rpc_url)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        if not self._rpc_url:
            raise ChainDataError("Alchemy RPC URL not configured")
        try:
            response = await self._client.post(
                self._rpc_url,
                json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
            )
        except httpx.HTTPError as e:
            raise ChainDataError(str(e) or "Network error") from e

        if response.is_error:
            raise ChainDataError(f"HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            raise ChainDataError("Invalid JSON-RPC response") from e
        if not isinstance(body, dict) or body.get("error") or not body.get("result"):
            raise ChainDataError(f"{method} returned no result")
        return body["result"]

    async def get_eth_balance(self, address: str) -> WalletBalance:
        """
        Native balance of an address at the latest block.

        Returns a zero balance for addresses that are not 0x addresses and on
        any RPC failure.
        """
        if not address.startswith("0x") or len(address) < 10:
            return WalletBalance(address=address)

        try:
            result = await self._call("eth_getBalance", [address, "latest"])
            wei = int(result, 16)
        except (ChainDataError, ValueError, TypeError) as e:
            logger.warning("wallet_balance_unavailable", address=address, error=str(e))
            return WalletBalance(address=address)

        return WalletBalance(
            address=address,
            balance_wei=wei,
            balance_eth=round(wei / WEI_PER_ETH, 4),
        )

    async def get_block_number(self) -> int:
        try:
            result = await self._call("eth_blockNumber", [])
            return int(result, 16)
        except (ChainDataError, ValueError, TypeError) as e:
            logger.warning("block_number_unavailable", error=str(e))
            return 0

    async def test_connection(self) -> ChainConnectionTest:
        if not self._rpc_url:
            return ChainConnectionTest(configured=False, connected=False, error="API key not set")

        start = time.monotonic()
        block_number = await self.get_block_number()
        latency_ms = round((time.monotonic() - start) * 1000, 2)
        if not block_number:
            return ChainConnectionTest(
                configured=True,
                connected=False,
                latency_ms=latency_ms,
                error="Failed to get block number",
            )
        return ChainConnectionTest(
            configured=True,
            connected=True,
            block_number=block_number,
            latency_ms=latency_ms,
        )
