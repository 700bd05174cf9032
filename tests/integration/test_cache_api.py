"""Integration tests for the cache HTTP surface."""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from seekmix import __version__
from seekmix.core.cache import SemanticCache
from tests.factories import FakeClock


@pytest.mark.integration
class TestLookupAndStore:
    async def test_miss_then_hit(self, client: AsyncClient) -> None:
        miss = await client.post("/v1/cache/lookup", json={"query": "query"})
        assert miss.status_code == 200
        assert miss.json() == {"hit": False, "entry": None}

        stored = await client.post(
            "/v1/cache/store", json={"query": "query", "result": {"answer": 42}}
        )
        assert stored.status_code == 200
        assert stored.json() == {"stored": True}

        hit = await client.post("/v1/cache/lookup", json={"query": "near"})
        data = hit.json()
        assert data["hit"] is True
        assert data["entry"]["query"] == "query"
        assert data["entry"]["result"] == {"answer": 42}
        assert data["entry"]["score"] == pytest.approx(0.05, abs=1e-6)
        assert data["entry"]["similarity"] == pytest.approx(0.95, abs=1e-6)

    async def test_far_query_misses(self, client: AsyncClient) -> None:
        await client.post("/v1/cache/store", json={"query": "query", "result": "x"})
        response = await client.post("/v1/cache/lookup", json={"query": "far"})
        assert response.json()["hit"] is False

    async def test_tags(self, client: AsyncClient) -> None:
        await client.post(
            "/v1/cache/store",
            json={"query": "query", "result": "bonjour", "tags": ["fr", "greeting"]},
        )

        both = await client.post(
            "/v1/cache/lookup", json={"query": "near", "tags": ["greeting", "fr"]}
        )
        assert both.json()["hit"] is True
        assert both.json()["entry"]["tags"] == ["fr", "greeting"]

        other = await client.post("/v1/cache/lookup", json={"query": "near", "tags": ["es"]})
        assert other.json()["hit"] is False

    async def test_empty_query_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/v1/cache/lookup", json={"query": ""})
        assert response.status_code == 422

    async def test_store_embedding_failure(self, client: AsyncClient) -> None:
        # the test embedder has no vector for this text
        response = await client.post(
            "/v1/cache/store", json={"query": "unknown text", "result": 1}
        )
        assert response.status_code == 502
        assert response.json()["error"]["type"] == "embedding_error"

    async def test_lookup_embedding_failure_is_a_miss(self, client: AsyncClient) -> None:
        response = await client.post("/v1/cache/lookup", json={"query": "unknown text"})
        assert response.status_code == 200
        assert response.json()["hit"] is False

    async def test_response_headers(self, client: AsyncClient) -> None:
        response = await client.post(
            "/v1/cache/lookup",
            json={"query": "query"},
            headers={"x-request-id": "req-123"},
        )
        assert response.headers["x-request-id"] == "req-123"
        assert "x-seekmix-latency-ms" in response.headers

    async def test_not_connected(self, app: FastAPI, client: AsyncClient) -> None:
        app.state.cache = None
        response = await client.post("/v1/cache/lookup", json={"query": "query"})
        assert response.status_code == 503
        assert response.json()["error"]["type"] == "not_connected"


@pytest.mark.integration
class TestAdminCache:
    async def test_requires_master_key(self, client: AsyncClient) -> None:
        response = await client.get("/admin/v1/cache/stats")
        assert response.status_code == 401

        response = await client.get(
            "/admin/v1/cache/stats", headers={"Authorization": "Bearer wrong"}
        )
        assert response.status_code == 401

        response = await client.get(
            "/admin/v1/cache/stats", headers={"Authorization": "Token test_admin_key"}
        )
        assert response.status_code == 401

    async def test_stats(
        self, client: AsyncClient, cache: SemanticCache, admin_headers: dict
    ) -> None:
        await cache.set("query", "a")
        await cache.set("far", "b")

        response = await client.get("/admin/v1/cache/stats", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_entries"] == 2
        assert data["dimensions"] == 3
        assert data["model"] == "test/embedder-v1"
        assert data["vector_backend"] == "numpy"
        assert data["namespace"] == cache.namespace.token

    async def test_invalidate(
        self,
        client: AsyncClient,
        cache: SemanticCache,
        clock: FakeClock,
        admin_headers: dict,
    ) -> None:
        await cache.set("query", "old")
        clock.advance(120)
        await cache.set("far", "new")

        response = await client.post(
            "/admin/v1/cache/invalidate", headers=admin_headers, json={"max_age_seconds": 60}
        )
        assert response.status_code == 200
        assert response.json() == {"removed": 1}

        assert await cache.get("query") is None
        assert (await cache.get("far")).result == "new"

    async def test_invalidate_rejects_negative_age(
        self, client: AsyncClient, admin_headers: dict
    ) -> None:
        response = await client.post(
            "/admin/v1/cache/invalidate", headers=admin_headers, json={"max_age_seconds": -1}
        )
        assert response.status_code == 422

    async def test_purge_expired_without_ttl(
        self, client: AsyncClient, cache: SemanticCache, admin_headers: dict
    ) -> None:
        await cache.set("query", "a")
        response = await client.post("/admin/v1/cache/purge-expired", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"removed": 0}

    async def test_clear(
        self, client: AsyncClient, cache: SemanticCache, admin_headers: dict
    ) -> None:
        await cache.set("query", "a")
        await cache.set("far", "b")

        response = await client.post("/admin/v1/cache/clear", headers=admin_headers)
        assert response.json() == {"cleared": True}
        assert (await cache.stats()).total_entries == 0
        assert await cache.get("query") is None


@pytest.mark.integration
class TestHealth:
    async def test_liveness(self, client: AsyncClient) -> None:
        response = await client.get("/admin/v1/health/live")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__

    async def test_readiness(self, client: AsyncClient, cache: SemanticCache) -> None:
        response = await client.get("/admin/v1/health/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "connected"
        assert data["embedding"] == "loaded"
        assert data["namespace"] == cache.namespace.token

    async def test_readiness_without_cache(self, app: FastAPI, client: AsyncClient) -> None:
        app.state.cache = None
        response = await client.get("/admin/v1/health/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
