"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from solwatch.api.routes import (
    groups,
    health,
    monitoring,
    pnl,
    prices,
    transactions,
    wallets,
    webhooks,
)
from solwatch.config.logging import configure_logging
from solwatch.config.settings import get_settings
from solwatch.core.container import ServiceContainer
from solwatch.core.exceptions import (
    DatabaseConnectionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service container on startup, tear it down on shutdown."""
    configure_logging()
    log.info("application_starting")

    container = ServiceContainer(get_settings())
    app.state.container = container
    try:
        await container.start()
    except DatabaseConnectionError as e:
        # keep serving /health so the degraded state is visible
        log.warning("startup_storage_failed", error=str(e))

    log.info("application_started")

    yield

    log.info("application_stopping")
    await container.stop()
    log.info("application_stopped")


async def _validation_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _not_found_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _storage_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    log.error("request_storage_error", error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Solana wallet transaction tracking and PnL",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(PersistenceError, _storage_error_handler)
    app.add_exception_handler(DatabaseConnectionError, _storage_error_handler)

    app.include_router(health.router)
    app.include_router(monitoring.router)
    app.include_router(webhooks.router)
    app.include_router(wallets.router)
    app.include_router(groups.router)
    app.include_router(transactions.router)
    app.include_router(prices.router)
    app.include_router(pnl.router)

    return app
