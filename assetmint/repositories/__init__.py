"""
AssetMint Repositories

Persistence gateway contract and its implementations.
"""

from assetmint.repositories.asset_repository import (
    AssetRepository,
    PersistenceResult,
    PersistenceStatus,
)
from assetmint.repositories.memory_repository import InMemoryAssetRepository
from assetmint.repositories.supabase_repository import SupabaseAssetRepository

__all__ = [
    "AssetRepository",
    "PersistenceResult",
    "PersistenceStatus",
    "InMemoryAssetRepository",
    "SupabaseAssetRepository",
]
