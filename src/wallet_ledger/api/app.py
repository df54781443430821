"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from wallet_ledger import __version__
from wallet_ledger.api.v1 import v1_router
from wallet_ledger.config.settings import AppConfig
from wallet_ledger.engine.client import LedgerEngine
from wallet_ledger.errors.ledger_errors import LedgerError
from wallet_ledger.metrics.collector import LedgerMetrics
from wallet_ledger.metrics.middleware import PrometheusMiddleware
from wallet_ledger.sources import StaticWalletSource

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from wallet_ledger.chain.oracle import ChainTipSource
    from wallet_ledger.sources import WalletCoreSource

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialise the engine on startup and close it on exit."""
    config: AppConfig = app.state.config
    source: WalletCoreSource | None = app.state.source
    if source is None and config.source_path:
        source = StaticWalletSource.from_file(config.source_path)

    engine = LedgerEngine(
        config,
        source,
        tip_source=app.state.tip_source,
        metrics=app.state.metrics,
    )
    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Ledger engine started")
        yield
    finally:
        await engine.close()
        app.state.engine = None
        logger.info("Ledger engine shut down")


def create_app(
    *,
    config: AppConfig | None = None,
    source: WalletCoreSource | None = None,
    tip_source: ChainTipSource | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
        source: Wallet core to refresh from; defaults to the dump at
            ``config.source_path`` when set.
        tip_source: Chain tip provider overriding the configured one.
    """
    if config is None:
        config = AppConfig()

    app = FastAPI(
        title="wallet-ledger",
        version=__version__,
        description="Ledger reconciliation, classification and analytics for a shielded wallet",
        lifespan=_lifespan,
    )

    app.state.config = config
    app.state.source = source
    app.state.tip_source = tip_source
    app.state.engine = None
    app.state.metrics = LedgerMetrics() if config.metrics.enabled else None

    # -- Middleware --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if app.state.metrics is not None:
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)

    # -- Error handler --
    @app.exception_handler(LedgerError)
    async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        engine: LedgerEngine | None = app.state.engine
        if engine is None:
            return {"status": "starting"}
        components = await engine.health_check()
        return {"status": "ok", **components}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        registry = app.state.metrics.registry if app.state.metrics is not None else None
        body = generate_latest(registry) if registry else generate_latest()
        return Response(
            content=body,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Mount v1 API --
    app.include_router(v1_router)

    return app
