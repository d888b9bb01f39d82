"""
AssetMint Services

Gateways to external systems and the marketplace mutation orchestrator.
Import from the submodules directly.
"""
