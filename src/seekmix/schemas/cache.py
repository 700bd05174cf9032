"""Cache request/response schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CacheLookupRequest(BaseModel):
    query: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list, description="All must be present on the entry")


class CacheEntryResponse(BaseModel):
    query: str
    result: Any
    timestamp: int
    score: float
    similarity: float
    tags: list[str]


class CacheLookupResponse(BaseModel):
    hit: bool
    entry: CacheEntryResponse | None = None


class CacheStoreRequest(BaseModel):
    query: str = Field(..., min_length=1)
    result: Any
    tags: list[str] = Field(default_factory=list)


class CacheStoreResponse(BaseModel):
    stored: bool


class CacheStatsResponse(BaseModel):
    namespace: str
    model: str
    dimensions: int
    vector_backend: str
    total_entries: int
    expired_entries: int
    orphaned_vectors: int
    oldest_timestamp: int | None
    newest_timestamp: int | None
    ttl_seconds: int


class CacheInvalidateRequest(BaseModel):
    max_age_seconds: float = Field(..., ge=0, description="Remove entries older than this")


class CacheInvalidateResponse(BaseModel):
    removed: int


class CacheClearResponse(BaseModel):
    cleared: bool
