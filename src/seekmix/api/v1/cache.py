"""Cache lookup and store endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from seekmix.api.deps import Cache
from seekmix.schemas.cache import (
    CacheEntryResponse,
    CacheLookupRequest,
    CacheLookupResponse,
    CacheStoreRequest,
    CacheStoreResponse,
)

router = APIRouter(prefix="/cache")


@router.post("/lookup", response_model=CacheLookupResponse, summary="Semantic lookup")
async def lookup(body: CacheLookupRequest, cache: Cache) -> CacheLookupResponse:
    hit = await cache.get(body.query, tags=body.tags)
    if hit is None:
        return CacheLookupResponse(hit=False)
    return CacheLookupResponse(hit=True, entry=CacheEntryResponse(**hit.to_dict()))


@router.post("/store", response_model=CacheStoreResponse, summary="Store a result")
async def store(body: CacheStoreRequest, cache: Cache) -> CacheStoreResponse:
    stored = await cache.set(body.query, body.result, tags=body.tags)
    return CacheStoreResponse(stored=stored)
