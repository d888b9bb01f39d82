"""
Tests for the Chain Data Service.
"""

import json

import httpx
import pytest

from assetmint.services.chain_data import AlchemyChainData

RPC_URL = "https://eth-mainnet.g.alchemy.com/v2/key"
ADDRESS = "0x1234567890abcdef1234567890abcdef12345678"


def make_chain(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AlchemyChainData(rpc_url=RPC_URL, http_client=client)


class TestEthBalance:

    @pytest.mark.asyncio
    async def test_balance_in_eth(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": hex(15 * 10**17)})

        balance = await make_chain(handler).get_eth_balance(ADDRESS)

        assert balance.balance_wei == 15 * 10**17
        assert balance.balance_eth == 1.5
        assert seen[0]["method"] == "eth_getBalance"
        assert seen[0]["params"] == [ADDRESS, "latest"]

    @pytest.mark.asyncio
    async def test_non_hex_address_is_zero_without_call(self):
        calls = []
        chain = make_chain(lambda r: calls.append(r))

        balance = await chain.get_eth_balance("owner@example.com")

        assert balance.balance_eth == 0.0
        assert calls == []

    @pytest.mark.asyncio
    async def test_rpc_error_is_zero(self):
        chain = make_chain(
            lambda r: httpx.Response(200, json={"error": {"code": -32602, "message": "bad"}})
        )

        balance = await chain.get_eth_balance(ADDRESS)

        assert balance.balance_wei == 0

    @pytest.mark.asyncio
    async def test_http_error_is_zero(self):
        balance = await make_chain(lambda r: httpx.Response(429)).get_eth_balance(ADDRESS)

        assert balance.balance_eth == 0.0

    @pytest.mark.asyncio
    async def test_unconfigured_is_zero(self):
        balance = await AlchemyChainData(rpc_url=None).get_eth_balance(ADDRESS)

        assert balance.balance_eth == 0.0


class TestBlockNumber:

    @pytest.mark.asyncio
    async def test_block_number(self):
        chain = make_chain(lambda r: httpx.Response(200, json={"result": "0x10"}))

        assert await chain.get_block_number() == 16

    @pytest.mark.asyncio
    async def test_connection_test(self):
        status = await make_chain(lambda r: httpx.Response(200, json={"result": "0x10"})).test_connection()

        assert status.connected
        assert status.block_number == 16

    @pytest.mark.asyncio
    async def test_connection_test_failure(self):
        status = await make_chain(lambda r: httpx.Response(500)).test_connection()

        assert status.configured
        assert not status.connected
