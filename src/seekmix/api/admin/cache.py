"""Cache maintenance endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from seekmix.api.deps import AdminAccess, Cache
from seekmix.schemas.cache import (
    CacheClearResponse,
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    CacheStatsResponse,
)

router = APIRouter()


@router.get("/stats", response_model=CacheStatsResponse, summary="Cache statistics")
async def cache_stats(_: AdminAccess, cache: Cache) -> CacheStatsResponse:
    stats = await cache.stats()
    return CacheStatsResponse(**stats.to_dict())


@router.post("/invalidate", response_model=CacheInvalidateResponse, summary="Remove old entries")
async def invalidate_old(
    body: CacheInvalidateRequest, _: AdminAccess, cache: Cache
) -> CacheInvalidateResponse:
    removed = await cache.invalidate_old(body.max_age_seconds)
    return CacheInvalidateResponse(removed=removed)


@router.post(
    "/purge-expired", response_model=CacheInvalidateResponse, summary="Apply TTL eagerly"
)
async def purge_expired(_: AdminAccess, cache: Cache) -> CacheInvalidateResponse:
    removed = await cache.purge_expired()
    return CacheInvalidateResponse(removed=removed)


@router.post("/clear", response_model=CacheClearResponse, summary="Delete every entry")
async def clear_cache(_: AdminAccess, cache: Cache) -> CacheClearResponse:
    await cache.drop_keys()
    return CacheClearResponse(cleared=True)
