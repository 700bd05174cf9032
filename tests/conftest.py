"""
Shared test fixtures.

Storage runs on a temporary SQLite file through aiosqlite. Embeddings come
from a lookup table wrapped in the `custom` provider, so distances between
queries are chosen by the test rather than by a model.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from seekmix.app import create_app
from seekmix.config import Settings, get_settings
from seekmix.core.cache import SemanticCache
from tests.factories import (
    Embedder,
    FakeClock,
    at_distance,
    create_test_provider,
    create_test_settings,
)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "seekmix.db"


@pytest.fixture
def embedder() -> Embedder:
    return Embedder(
        {
            "query": at_distance(0.0),
            "near": at_distance(0.05),
            "close": at_distance(0.08),
            "far": at_distance(0.5),
        }
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(db_path: Path) -> Settings:
    # cutoff distance 0.1
    return create_test_settings(db_path, similarity_threshold=0.9)


@pytest.fixture
async def cache(
    settings: Settings, embedder: Embedder, clock: FakeClock
) -> AsyncIterator[SemanticCache]:
    c = SemanticCache(settings, provider=create_test_provider(embedder), clock=clock)
    await c.connect()
    yield c
    await c.disconnect()


# App + Client Fixtures

@pytest.fixture
def admin_settings(settings: Settings) -> Settings:
    settings.auth.master_api_key = "test_admin_key"
    return settings


@pytest.fixture
def app(admin_settings: Settings, cache: SemanticCache) -> FastAPI:
    application = create_app(admin_settings, cache)
    # ASGITransport does not run the lifespan; attach the connected cache directly
    application.state.cache = cache
    application.dependency_overrides[get_settings] = lambda: admin_settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers with admin authentication."""
    return {"Authorization": "Bearer test_admin_key"}
