"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from activation_service.adapters.factory import Stores, build_stores, seed_demo_codes
from activation_service.api.errors import install_exception_handlers
from activation_service.api.middleware import (
    AccessLogMiddleware,
    SecurityHeadersMiddleware,
    UnhandledErrorMiddleware,
)
from activation_service.api.models import HealthResponse
from activation_service.api.rate_limit import TokenBucketLimiter
from activation_service.api.routes import router as api_router
from activation_service.config.settings import Settings, get_settings
from activation_service.domain.exceptions import StorageError
from activation_service.domain.verification import VerificationService

logger = logging.getLogger(__name__)

# Browser extension clients only
EXTENSION_ORIGIN_REGEX = r"^(chrome|moz)-extension://.*$"

tags_metadata = [
    {
        "name": "activation",
        "description": "Activation code verification with advisory re-verification scheduling",
    },
]


async def run_log_retention(
    service: VerificationService, retention_days: int, interval_seconds: float
) -> None:
    """
    Periodically purge old verification log entries.

    Runs until cancelled. A failed sweep is logged and retried on the
    next interval.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(service.purge_old_logs, retention_days)
        except Exception:
            logger.exception("Verification log retention sweep failed")


def create_app(settings: Settings | None = None, stores: Stores | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration; defaults to environment-based settings
        stores: Pre-built stores. When given, the app uses them and does not
            close them on shutdown; otherwise stores are built from settings.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Manages application startup and shutdown:
        - Builds the configured stores (pool + migrations for postgres)
        - Seeds demo codes when enabled
        - Runs the verification log retention task
        - Closes owned stores on shutdown
        """
        logger.info("Starting application...")

        owned = stores is None
        app.state.stores = build_stores(settings) if owned else stores

        if settings.seed_demo_codes:
            try:
                seed_demo_codes(app.state.stores.code_store)
            except Exception:
                logger.error("Seeding demo codes failed, aborting startup")
                if owned:
                    app.state.stores.close()
                raise

        maintenance = VerificationService(
            code_store=app.state.stores.code_store,
            verification_log=app.state.stores.verification_log,
        )
        retention_task = asyncio.create_task(
            run_log_retention(
                maintenance,
                settings.log_retention_days,
                settings.log_cleanup_interval_seconds,
            )
        )

        logger.info("Application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down application...")
        retention_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await retention_task
        if owned:
            app.state.stores.close()

    app = FastAPI(
        title=settings.service_name,
        description="Activation code verification API - advisory re-verification scheduling",
        version=settings.service_version,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = TokenBucketLimiter.per_window(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds
    )

    # Added first so it runs innermost, inside the header and logging layers
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=EXTENSION_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)

    install_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> JSONResponse:
        """
        Health check endpoint with storage validation.

        Returns 200 when the store answers, 503 with status "degraded" otherwise.
        """
        try:
            request.app.state.stores.code_store.ping()
            database, status_code = "connected", 200
        except StorageError:
            database, status_code = "error", 503

        body = HealthResponse(
            status="ok" if status_code == 200 else "degraded",
            service=settings.service_name,
            version=settings.service_version,
            environment=settings.environment,
            database=database,
        )
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
