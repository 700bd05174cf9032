"""Health check schemas."""

from __future__ import annotations

from pydantic import BaseModel


class LivenessResponse(BaseModel):
    status: str = "ok"
    version: str


class ReadinessResponse(BaseModel):
    status: str
    database: str   # "connected" | "disconnected"
    embedding: str  # "loaded" | "not_loaded"
    namespace: str | None = None
