"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from seekmix import __version__
from seekmix.api.admin.router import admin_router
from seekmix.api.middleware.logging import RequestLoggingMiddleware
from seekmix.api.middleware.request_id import RequestIDMiddleware
from seekmix.api.v1.router import v1_router
from seekmix.common.errors import register_error_handlers
from seekmix.common.logging import configure_logging
from seekmix.config import Settings, get_settings
from seekmix.core.cache import SemanticCache

logger = structlog.stdlib.get_logger()


def create_app(
    settings: Settings | None = None,
    cache: SemanticCache | None = None,
) -> FastAPI:
    """Application factory, called by Uvicorn."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.logging.level, settings.logging.format)

        await logger.ainfo(
            "seekmix.startup",
            version=__version__,
            env=settings.env,
            storage=settings.storage.url.split("@")[-1],
            embedding_provider=settings.embedding.provider,
            embedding_model=settings.embedding.model,
        )

        # Model loading happens here, not on the first request
        app.state.cache = cache or SemanticCache(settings)
        await app.state.cache.connect()

        yield

        await app.state.cache.disconnect()
        await logger.ainfo("seekmix.shutdown")

    app = FastAPI(
        title="SeekMix Semantic Cache",
        description="Semantic result cache: reuse results for semantically equivalent queries.",
        version=__version__,
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    app.include_router(v1_router)
    app.include_router(admin_router)

    return app
