"""
AssetMint API

FastAPI application over the marketplace orchestrator and read side.
"""
