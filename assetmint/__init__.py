"""
AssetMint - Tokenized Asset Marketplace Core

Mint, bid and purchase orchestration over content storage, persistence and
notification gateways, with a keyed read cache kept consistent by targeted
invalidation.
"""

__version__ = "1.0.0"

from assetmint.config import settings

__all__ = ["settings", "__version__"]
