"""Health check endpoints for liveness/readiness probes."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse

from seekmix import __version__
from seekmix.common.errors import StorageError
from seekmix.core.cache import SemanticCache
from seekmix.schemas.health import LivenessResponse, ReadinessResponse

router = APIRouter()


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness() -> LivenessResponse:
    return LivenessResponse(version=__version__)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness(request: Request) -> ORJSONResponse:
    cache: SemanticCache | None = getattr(request.app.state, "cache", None)
    db_status = "disconnected"
    embedding_status = "not_loaded"
    namespace = None

    if cache is not None and cache.connected:
        namespace = cache.namespace.token if cache.namespace else None
        if cache.provider.initialized:
            embedding_status = "loaded"
        try:
            await cache.stats()
            db_status = "connected"
        except StorageError:
            pass

    overall = "ok" if db_status == "connected" and embedding_status == "loaded" else "degraded"

    return ORJSONResponse(
        status_code=200 if overall == "ok" else 503,
        content=ReadinessResponse(
            status=overall,
            database=db_status,
            embedding=embedding_status,
            namespace=namespace,
        ).model_dump(),
    )
