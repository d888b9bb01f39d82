"""
AssetMint - Structured Logging

structlog over the standard library. Development gets the console renderer,
production gets one JSON object per line. Credentials (Pinata JWTs, the
Supabase anon key, bearer headers) are redacted before rendering.
"""

from __future__ import annotations

import logging
import re
import sys
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any
from uuid import uuid4

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from assetmint import __version__

REDACTED = "[REDACTED]"

DEFAULT_SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret",
        "token",
        "jwt",
        "api_key",
        "apikey",
        "anon_key",
        "authorization",
        "private_key",
        "dsn",
    }
)

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+", re.IGNORECASE)


# =============================================================================
# Processors
# =============================================================================

class CredentialRedactor:
    """
    Processor that masks credentials anywhere in an event.

    A value is masked when its key is one of the sensitive names or ends in
    one after an underscore, so pinata_jwt and access_token are masked while
    token_id is not.
    Bearer tokens embedded in free text (error messages echoing a request)
    are masked in place.
    """

    def __init__(self, sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS, max_depth: int = 8):
        self.sensitive_keys = tuple(k.lower() for k in sensitive_keys)
        self.max_depth = max_depth

    def _is_sensitive(self, key: Any) -> bool:
        if not isinstance(key, str):
            return False
        name = key.lower().replace("-", "_")
        return any(name == s or name.endswith(f"_{s}") for s in self.sensitive_keys)

    def _scrub(self, value: Any, depth: int) -> Any:
        if depth > self.max_depth:
            return value
        if isinstance(value, dict):
            return {
                k: REDACTED if self._is_sensitive(k) else self._scrub(v, depth + 1)
                for k, v in value.items()
            }
        if isinstance(value, list | tuple):
            return type(value)(self._scrub(v, depth + 1) for v in value)
        if isinstance(value, str) and "bearer" in value.lower():
            return _BEARER_RE.sub(rf"\1{REDACTED}", value)
        return value

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        scrubbed: EventDict = self._scrub(event_dict, 0)
        return scrubbed


def add_service_info(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", "assetmint")
    event_dict.setdefault("version", __version__)
    return event_dict


# =============================================================================
# Configuration
# =============================================================================

def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    redact: bool = True,
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Minimum level name for both structlog and stdlib loggers.
        json_output: Render JSON lines instead of the console format.
        redact: Mask credentials before rendering.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        structlog.processors.StackInfoRenderer(),
    ]
    if redact:
        processors.append(CredentialRedactor())

    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper())

    # Client libraries log every request at INFO
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# =============================================================================
# Request Context
# =============================================================================

def bind_context(**kwargs: Any) -> None:
    """Bind values that appear on every log line until cleared."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LoggingContextMiddleware:
    """
    ASGI middleware binding a request id, the route and the caller's wallet
    to the log context for the duration of one HTTP request.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        request_id = headers.get(b"x-request-id", b"").decode() or uuid4().hex
        wallet = headers.get(b"x-wallet-address", b"").decode() or None

        bind_context(
            request_id=request_id,
            method=scope.get("method", ""),
            path=scope.get("path", ""),
            wallet=wallet,
        )
        try:
            await self.app(scope, receive, send)
        finally:
            clear_context()


# =============================================================================
# Timing
# =============================================================================

@contextmanager
def log_duration(
    logger: Any,
    operation: str,
    level: str = "debug",
    **context: Any,
) -> Iterator[dict[str, Any]]:
    """
    Time a block and log ``<operation>_completed`` or ``<operation>_failed``.

    The yielded dict is merged into the completion event, so the block can
    attach values it only learns while running:

        with log_duration(logger, "supabase_request", table="assets") as timing:
            response = await client.get(...)
            timing["status"] = response.status_code
    """
    extra: dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield extra
    except Exception as e:
        logger.warning(
            f"{operation}_failed",
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            error=str(e),
            **context,
            **extra,
        )
        raise
    getattr(logger, level)(
        f"{operation}_completed",
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
        **context,
        **extra,
    )


__all__ = [
    "CredentialRedactor",
    "LoggingContextMiddleware",
    "bind_context",
    "clear_context",
    "configure_logging",
    "log_duration",
]
