"""
Unified error handling.

Every failure the cache can surface maps to one of the exceptions below.
The HTTP layer renders them as JSON error bodies.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse

logger = structlog.stdlib.get_logger()


class SeekMixError(Exception):
    """Base exception for all SeekMix errors."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.status_code,
                **self.details,
            }
        }


class EmbeddingError(SeekMixError):
    """Embedding provider unavailable or returned malformed output."""

    status_code = 502
    error_type = "embedding_error"


class DimensionMismatchError(EmbeddingError):
    """Vector length differs from the namespace's fixed dimensionality."""

    status_code = 500
    error_type = "dimension_mismatch"


class StorageError(SeekMixError):
    """Vector index or metadata store read/write failed."""

    status_code = 503
    error_type = "storage_error"


class SerializationError(SeekMixError):
    status_code = 400
    error_type = "serialization_error"


class NotConnectedError(SeekMixError):
    status_code = 503
    error_type = "not_connected"


class AuthenticationError(SeekMixError):
    status_code = 401
    error_type = "authentication_error"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(SeekMixError)
    async def seekmix_error_handler(request: Request, exc: SeekMixError) -> ORJSONResponse:
        await logger.awarning(
            "seekmix.error",
            error_type=exc.error_type,
            message=exc.message,
            status_code=exc.status_code,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
        await logger.aexception(
            "seekmix.unhandled_error",
            path=request.url.path,
            error=str(exc),
        )
        return ORJSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": "An internal error occurred.",
                    "type": "internal_error",
                    "code": 500,
                }
            },
        )
