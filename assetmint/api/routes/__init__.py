"""
AssetMint API Routes
"""
