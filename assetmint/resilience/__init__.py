"""
AssetMint Resilience

Read-side caching and the invalidation discipline that keeps it consistent
with marketplace mutations.
"""
