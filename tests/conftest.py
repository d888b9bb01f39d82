"""
AssetMint - Test Fixtures

Shared pytest fixtures for all test modules.
"""

from __future__ import annotations

import itertools
import os
from unittest.mock import AsyncMock

import pytest

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# No remote gateways are configured in tests; every HTTP gateway is exercised
# through httpx.MockTransport.

os.environ["APP_ENV"] = "testing"
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_ANON_KEY", None)
os.environ.pop("PINATA_JWT", None)
os.environ.pop("SENTRY_DSN", None)

from assetmint.kernel.task_queue import TaskQueue  # noqa: E402
from assetmint.models.marketplace import AssetCategory, MintRequest, SaleType  # noqa: E402
from assetmint.models.notifications import DeliveryResult  # noqa: E402
from assetmint.repositories.memory_repository import InMemoryAssetRepository  # noqa: E402
from assetmint.resilience.caching.cache_invalidation import CacheInvalidator  # noqa: E402
from assetmint.resilience.caching.query_cache import ReadCache  # noqa: E402
from assetmint.services.content_storage import UploadResult  # noqa: E402
from assetmint.services.marketplace import MarketplaceOrchestrator  # noqa: E402

OWNER = "0xabc0000000000000000000000000000000000001"
BUYER = "0xdef0000000000000000000000000000000000002"
BIDDER = "0xbee0000000000000000000000000000000000003"


class SequentialIssuer:
    """Deterministic identifier issuer for assertions on issued values."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def issue_token_id(self) -> str:
        return str(next(self._counter))

    def issue_contract_address(self) -> str:
        return "0x" + f"{next(self._counter):040x}"

    def issue_transaction_hash(self) -> str:
        return "0x" + f"{next(self._counter):064x}"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Gateways
# =============================================================================


@pytest.fixture
def issuer():
    return SequentialIssuer()


@pytest.fixture
def memory_repository(issuer):
    return InMemoryAssetRepository(identifier_issuer=issuer)


@pytest.fixture
def content_storage():
    """Content storage double whose uploads succeed."""
    storage = AsyncMock()
    storage.upload_file = AsyncMock(
        return_value=UploadResult(
            success=True,
            content_hash="bafyimage",
            url="https://gateway.pinata.cloud/ipfs/bafyimage",
        )
    )
    storage.upload_metadata = AsyncMock(
        return_value=UploadResult(
            success=True,
            content_hash="bafymeta",
            url="https://gateway.pinata.cloud/ipfs/bafymeta",
        )
    )
    return storage


@pytest.fixture
def failing_content_storage():
    """Content storage double that raises on every upload."""
    storage = AsyncMock()
    storage.upload_file = AsyncMock(side_effect=ConnectionError("gateway unreachable"))
    storage.upload_metadata = AsyncMock(side_effect=ConnectionError("gateway unreachable"))
    return storage


@pytest.fixture
def notifier():
    dispatcher = AsyncMock()
    dispatcher.send = AsyncMock(return_value=DeliveryResult(success=True, recipient="a@b.c"))
    return dispatcher


# =============================================================================
# Cache
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def read_cache(clock):
    return ReadCache(default_ttl=30.0, clock=clock)


@pytest.fixture
def invalidator(read_cache):
    return CacheInvalidator(read_cache)


# =============================================================================
# Orchestrator
# =============================================================================


@pytest.fixture
def task_queue():
    return TaskQueue("test-notifications")


@pytest.fixture
def orchestrator(content_storage, memory_repository, notifier, invalidator, issuer, task_queue):
    return MarketplaceOrchestrator(
        content_storage=content_storage,
        repository=memory_repository,
        notifier=notifier,
        invalidator=invalidator,
        identifier_issuer=issuer,
        task_queue=task_queue,
    )


@pytest.fixture
def mint_request():
    return MintRequest(
        image_reference="/tmp/aurora-7.png",
        name="Aurora #7",
        description="Northern lights over the fjord",
        category=AssetCategory.ART,
        price=3.2,
        sale_type=SaleType.FIXED,
        royalty_percent=5,
        supply=1,
        owner_wallet_address=OWNER,
    )
