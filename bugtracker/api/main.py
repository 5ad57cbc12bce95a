"""
FastAPI Application Factory

Creates and configures FastAPI application
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bugtracker.api.error_handlers import register_exception_handlers
from bugtracker.api.response_middleware import SuccessEnvelopeMiddleware
from bugtracker.core.config import settings
from bugtracker.core.db import close_db, init_db
from bugtracker.core.logging import configure_logging, get_logger
from bugtracker.embedding.factory import get_embedding_provider
from bugtracker.routers import ai, auth, bugs

logger = get_logger(__name__)


async def warmup_embedding_provider() -> None:
    """Preload the embedding model in the background; failures are logged."""
    t0 = time.perf_counter()
    try:
        logger.info(
            "embedding_provider_background_warmup_start",
            provider=settings.embedding_provider,
            model=settings.embedding_model_name,
        )
        await get_embedding_provider().warmup()
        logger.info(
            "embedding_provider_background_warmup_complete",
            elapsed_seconds=f"{time.perf_counter() - t0:.2f}",
        )
    except Exception as e:  # noqa: BLE001
        # Requests still work: the provider retries lazily and callers degrade.
        logger.error(
            "embedding_provider_background_warmup_failed",
            error=str(e),
            elapsed_seconds=f"{time.perf_counter() - t0:.2f}",
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, create tables outside production and
    schedule the embedding warmup. Shutdown: dispose the engine.
    """
    configure_logging()
    logger.info("application_startup", environment=settings.environment)

    if not settings.is_production:
        logger.info("initializing_database_tables")
        await init_db()

    warmup_task = asyncio.create_task(warmup_embedding_provider())

    yield

    logger.info("application_shutdown")
    if not warmup_task.done():
        warmup_task.cancel()
    await close_db()


def create_app() -> FastAPI:
    """
    Create FastAPI application

    Usage:
        app = create_app()
        uvicorn.run(app, host="0.0.0.0", port=8000)
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Bug tracker with duplicate detection and semantic search",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(SuccessEnvelopeMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix=settings.api_v1_prefix)
    app.include_router(bugs.router, prefix=settings.api_v1_prefix)
    app.include_router(ai.router, prefix=settings.api_v1_prefix)

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        return {
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        }

    logger.info("fastapi_app_created", routes=len(app.routes))

    return app


# Application instance
app = create_app()
