"""
AssetMint - Monitoring Module

Structured logging and request log context.
"""

from .logging import (
    CredentialRedactor,
    LoggingContextMiddleware,
    bind_context,
    clear_context,
    configure_logging,
    log_duration,
)

__all__ = [
    "CredentialRedactor",
    "configure_logging",
    "bind_context",
    "clear_context",
    "LoggingContextMiddleware",
    "log_duration",
]
