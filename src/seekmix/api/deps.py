"""
FastAPI dependency injection.

Central place for all shared dependencies used across routes.
"""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, Header, Request

from seekmix.common.errors import AuthenticationError, NotConnectedError
from seekmix.config import Settings, get_settings
from seekmix.core.cache import SemanticCache


def get_cache(request: Request) -> SemanticCache:
    """The process-wide cache, connected during application startup."""
    cache: SemanticCache | None = getattr(request.app.state, "cache", None)
    if cache is None or not cache.connected:
        raise NotConnectedError("Cache is not connected")
    return cache


async def require_admin(
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Guard admin routes with the master key.

    Accepts:
        - Authorization: Bearer <master key>

    When no master key is configured the admin routes are open.
    """
    master_key = settings.auth.master_api_key
    if not master_key:
        return

    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid Authorization header format. Expected: Bearer <key>")

    if not hmac.compare_digest(parts[1].strip(), master_key):
        raise AuthenticationError("Invalid API key")


# Annotated types for route signatures
Cache = Annotated[SemanticCache, Depends(get_cache)]
AdminAccess = Annotated[None, Depends(require_admin)]
