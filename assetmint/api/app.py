"""
AssetMint - FastAPI Application Factory

Builds the HTTP surface over the marketplace orchestrator and the cached
read side:
- marketplace mutations (mint, bid, purchase) and cached reads
- wallet balances
- hosted checkout
- health
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sentry_sdk._types import Event as SentryEvent

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from assetmint import __version__
from assetmint.config import Settings, get_settings
from assetmint.kernel.task_queue import TaskQueue
from assetmint.monitoring import LoggingContextMiddleware, configure_logging
from assetmint.repositories.asset_repository import AssetRepository
from assetmint.repositories.memory_repository import InMemoryAssetRepository
from assetmint.repositories.supabase_repository import SupabaseAssetRepository
from assetmint.resilience.caching.cache_invalidation import CacheInvalidator
from assetmint.resilience.caching.query_cache import ReadCache
from assetmint.services.chain_data import AlchemyChainData
from assetmint.services.checkout import CheckoutService
from assetmint.services.content_storage import ContentStorageGateway, PinataContentGateway
from assetmint.services.identifiers import IdentifierIssuer, SyntheticIdentifierIssuer
from assetmint.services.marketplace import (
    AssetNotFoundError,
    MarketplaceError,
    MarketplaceOrchestrator,
    OperationRejected,
    PersistenceError,
)
from assetmint.services.notifications import (
    EmailNotificationDispatcher,
    NotificationDispatcher,
)
from assetmint.services.reads import MarketplaceReads

_settings = get_settings()


def _sentry_before_send(
    event: SentryEvent,
    hint: dict[str, Any],
) -> SentryEvent | None:
    """Drop health check noise."""
    request_data = event.get("request")
    if isinstance(request_data, dict) and "/health" in str(request_data.get("url", "")):
        return None
    return event


_sentry_initialized = False
if _settings.sentry_dsn:
    sentry_sdk.init(
        dsn=_settings.sentry_dsn,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        traces_sample_rate=0.1 if _settings.is_production else 1.0,
        environment=_settings.app_env,
        release=f"assetmint@{__version__}",
        send_default_pii=False,
        before_send=_sentry_before_send,
    )
    _sentry_initialized = True

configure_logging(
    level=_settings.log_level,
    json_output=_settings.is_production,
)

logger = structlog.get_logger(__name__)

if _sentry_initialized:
    logger.info("sentry_initialized", environment=_settings.app_env)
else:
    logger.debug("sentry_not_configured", hint="Set SENTRY_DSN to enable error tracking")


class MarketplaceApp:
    """
    Application container.

    Builds every collaborator from settings at startup. Collaborators passed
    to the constructor are used as given, which is how tests swap in doubles.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        repository: AssetRepository | None = None,
        content_storage: ContentStorageGateway | None = None,
        notifier: NotificationDispatcher | None = None,
        chain_data: AlchemyChainData | None = None,
        checkout: CheckoutService | None = None,
        identifier_issuer: IdentifierIssuer | None = None,
    ) -> None:
        self.settings = settings or get_settings()

        self.repository = repository
        self.content_storage = content_storage
        self.notifier = notifier
        self.chain_data = chain_data
        self.checkout = checkout
        self.identifier_issuer = identifier_issuer

        self.cache: ReadCache | None = None
        self.invalidator: CacheInvalidator | None = None
        self.task_queue: TaskQueue | None = None
        self.orchestrator: MarketplaceOrchestrator | None = None
        self.reads: MarketplaceReads | None = None

        self.is_ready = False
        self.started_at: datetime | None = None

    async def initialize(self) -> None:
        if self.is_ready:
            return

        s = self.settings
        logger.info("assetmint_starting", env=s.app_env, supabase=s.supabase_configured)

        self.identifier_issuer = self.identifier_issuer or SyntheticIdentifierIssuer()

        if self.repository is None:
            if s.supabase_configured:
                self.repository = SupabaseAssetRepository(
                    base_url=s.supabase_url or "",
                    api_key=s.supabase_anon_key or "",
                    eth_usd_rate=s.eth_usd_rate,
                    timeout_seconds=s.supabase_timeout_seconds,
                    identifier_issuer=self.identifier_issuer,
                )
            else:
                logger.warning("supabase_not_configured", fallback="in_memory")
                self.repository = InMemoryAssetRepository(
                    eth_usd_rate=s.eth_usd_rate,
                    identifier_issuer=self.identifier_issuer,
                )

        if self.content_storage is None:
            self.content_storage = PinataContentGateway(
                jwt=s.pinata_jwt,
                gateway_url=s.pinata_gateway,
                upload_url=s.pinata_upload_url,
                api_url=s.pinata_api_url,
                timeout_seconds=s.pinata_timeout_seconds,
            )

        if self.notifier is None:
            self.notifier = EmailNotificationDispatcher(
                supabase_url=s.supabase_url,
                anon_key=s.supabase_anon_key,
                from_name=s.notification_from_name,
                fallback_email=s.notification_fallback_email,
                timeout_seconds=s.notification_timeout_seconds,
            )

        if self.chain_data is None:
            self.chain_data = AlchemyChainData(rpc_url=s.alchemy_rpc_url)

        if self.checkout is None:
            self.checkout = CheckoutService(
                supabase_url=s.supabase_url,
                anon_key=s.supabase_anon_key,
            )

        self.cache = ReadCache(default_ttl=s.cache_assets_ttl_seconds)
        self.invalidator = CacheInvalidator(self.cache)
        self.task_queue = TaskQueue("notifications")

        self.orchestrator = MarketplaceOrchestrator(
            content_storage=self.content_storage,
            repository=self.repository,
            notifier=self.notifier,
            invalidator=self.invalidator,
            identifier_issuer=self.identifier_issuer,
            task_queue=self.task_queue,
        )
        self.reads = MarketplaceReads(
            repository=self.repository,
            cache=self.cache,
            chain_data=self.chain_data,
            assets_ttl=s.cache_assets_ttl_seconds,
            asset_ttl=s.cache_asset_ttl_seconds,
            platform_stats_ttl=s.cache_platform_stats_ttl_seconds,
            wallet_balance_ttl=s.cache_wallet_balance_ttl_seconds,
        )

        self.is_ready = True
        self.started_at = datetime.now(UTC)
        logger.info("assetmint_started")

    async def shutdown(self, timeout_seconds: float = 10.0) -> None:
        """Drain pending notifications, then release HTTP clients."""
        logger.info("assetmint_shutting_down", timeout_seconds=timeout_seconds)
        self.is_ready = False

        if self.task_queue:
            await self.task_queue.close(timeout=timeout_seconds)

        for component in (
            self.repository,
            self.content_storage,
            self.notifier,
            self.chain_data,
            self.checkout,
        ):
            close = getattr(component, "close", None)
            if close is None:
                continue
            try:
                await close()
            except (RuntimeError, OSError) as e:
                logger.warning(
                    "component_shutdown_failed",
                    component=type(component).__name__,
                    error=str(e),
                )

        logger.info("assetmint_shutdown_complete")

    def get_status(self) -> dict[str, Any]:
        return {
            "status": "ready" if self.is_ready else "starting",
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "uptime_seconds": (
                (datetime.now(UTC) - self.started_at).total_seconds() if self.started_at else 0
            ),
            "persistence": type(self.repository).__name__ if self.repository else None,
            "pending_notifications": self.task_queue.pending if self.task_queue else 0,
        }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    container: MarketplaceApp = app.state.container
    try:
        await container.initialize()
        yield
    finally:
        shutdown_timeout = 10.0
        try:
            await asyncio.wait_for(
                container.shutdown(timeout_seconds=shutdown_timeout),
                timeout=shutdown_timeout + 5.0,
            )
        except TimeoutError:
            logger.error("assetmint_shutdown_timeout", timeout_seconds=shutdown_timeout)


def _error_body(request: Request, exc: MarketplaceError, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.message,
            "operation": exc.operation,
            "status_code": status_code,
            "path": str(request.url.path),
        },
    )


def create_app(
    container: MarketplaceApp | None = None,
    title: str = "AssetMint",
    version: str = __version__,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built application container (tests); one is built
            from settings when omitted.
    """
    container = container or MarketplaceApp()
    docs_url = None if container.settings.is_production else "/docs"

    app = FastAPI(
        title=title,
        description="Tokenized real-world asset marketplace",
        version=version,
        docs_url=docs_url,
        redoc_url=None,
        debug=container.settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(LoggingContextMiddleware)

    # Exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "status_code": exc.status_code,
                "path": str(request.url.path),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "loc": error.get("loc", []),
                "type": error.get("type", "unknown"),
                "msg": error.get("msg", "Validation failed"),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={
                "error": "Validation error",
                "details": errors,
                "path": str(request.url.path),
            },
        )

    @app.exception_handler(AssetNotFoundError)
    async def not_found_handler(request: Request, exc: AssetNotFoundError) -> JSONResponse:
        return _error_body(request, exc, 404)

    @app.exception_handler(OperationRejected)
    async def rejected_handler(request: Request, exc: OperationRejected) -> JSONResponse:
        return _error_body(request, exc, 409)

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        return _error_body(request, exc, 409 if exc.rejected else 502)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", path=str(request.url.path), error=str(exc))
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "path": str(request.url.path)},
        )

    from assetmint.api.routes import billing, marketplace, wallets

    app.include_router(marketplace.router, prefix="/api/v1", tags=["Marketplace"])
    app.include_router(wallets.router, prefix="/api/v1", tags=["Wallets"])
    app.include_router(billing.router, prefix="/api/v1", tags=["Billing"])

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, Any]:
        return {"status": "healthy" if container.is_ready else "starting", "version": version}

    @app.get("/ready", include_in_schema=False)
    async def ready() -> JSONResponse:
        if not container.is_ready:
            return JSONResponse(status_code=503, content={"status": "not_ready"})
        return JSONResponse(content=container.get_status())

    logger.info("fastapi_app_created", title=title, version=version, docs_url=docs_url)
    return app


def run_server(
    host: str | None = None,
    port: int | None = None,
    reload: bool = False,
) -> None:
    """
    Run the API with uvicorn.

    For production use:
        uvicorn assetmint.api.app:create_app --factory --host 0.0.0.0 --port 8000
    """
    import uvicorn

    uvicorn.run(
        "assetmint.api.app:create_app",
        factory=True,
        host=host or _settings.api_host,
        port=port or _settings.api_port,
        reload=reload,
        log_level=_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server(reload=True)
