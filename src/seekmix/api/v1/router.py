"""V1 API router for cache operations."""

from fastapi import APIRouter

from seekmix.api.v1.cache import router as cache_router

v1_router = APIRouter(prefix="/v1", tags=["Cache"])

v1_router.include_router(cache_router)
