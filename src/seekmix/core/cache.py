"""
Semantic cache engine.

Maps queries to previously stored results by embedding distance:

  set(query, result, tags)  embed -> supersede same-text entry -> insert
                            metadata + vector in one transaction
  get(query, tags)          embed -> ranked KNN -> scan candidates in
                            ascending distance, applying in order:
                              1. distance cutoff (stop scanning)
                              2. orphaned vector (skip)
                              3. TTL (delete, keep scanning)
                              4. tag conjunction (skip)

The cutoff is expressed as a distance (1 - similarity_threshold) so the scan
can stop at the first candidate past it: every later candidate is farther.

Example:
    async with SemanticCache(settings) as cache:
        hit = await cache.get("best restaurants in Madrid")
        if hit is None:
            answer = await expensive_call(...)
            await cache.set("best restaurants in Madrid", answer)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import MetaData
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from seekmix.common.errors import (
    DimensionMismatchError,
    EmbeddingError,
    NotConnectedError,
    StorageError,
)
from seekmix.common.keys import (
    canonical_tags,
    dump_result,
    dump_tags,
    fingerprint,
    load_result,
    load_tags,
    now_ms,
)
from seekmix.config import Settings, get_settings
from seekmix.core.namespace import Namespace, resolve_namespace
from seekmix.core.sweeper import CacheStats, MaintenanceSweeper
from seekmix.embeddings.base import EmbeddingProvider
from seekmix.embeddings.registry import build_provider
from seekmix.storage.metadata_store import MetadataRecord, MetadataStore
from seekmix.storage.session import create_engine_from_settings
from seekmix.storage.vector_index import Neighbor, VectorIndex, build_vector_index

logger = structlog.stdlib.get_logger()


@dataclass
class CacheHit:
    """A cached entry returned by a lookup."""

    query: str
    result: Any
    timestamp: int
    score: float  # cosine distance; lower is closer
    tags: list[str] = field(default_factory=list)

    @property
    def similarity(self) -> float:
        return 1.0 - self.score

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "result": self.result,
            "timestamp": self.timestamp,
            "score": self.score,
            "similarity": self.similarity,
            "tags": list(self.tags),
        }


class SemanticCache:
    """
    Embedding-keyed result cache for a single namespace.

    The namespace is derived from the embedding provider's model identity, so
    switching models starts an independent cache in the same database.

    Usage:
        cache = SemanticCache(settings)
        await cache.connect()
        await cache.set(query, result, tags={"fr"})
        hit = await cache.get(query, tags={"fr"})
        await cache.disconnect()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        provider: EmbeddingProvider | None = None,
        engine: AsyncEngine | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings or get_settings()
        self._cache_settings = self.settings.cache
        self.provider = provider or build_provider(self.settings.embedding)
        self._engine = engine
        self._owns_engine = engine is None
        self._clock = clock
        self._connect_lock = asyncio.Lock()

        self.namespace: Namespace | None = None
        self._store: MetadataStore | None = None
        self._index: VectorIndex | None = None
        self._sweeper: MaintenanceSweeper | None = None

    # Lifecycle

    @property
    def connected(self) -> bool:
        return self._sweeper is not None

    async def connect(self) -> None:
        """
        Load the embedding model, resolve the namespace and create its tables.

        Idempotent: calling it on a connected cache does nothing.
        """
        if self.connected:
            return

        async with self._connect_lock:
            if self.connected:
                return

            await self.provider.initialize()
            if self.provider.dimensions is None:
                raise EmbeddingError(
                    "Embedding provider did not report its dimensions",
                    details={"model": self.provider.model},
                )

            namespace = resolve_namespace(self.provider.model)
            if self._engine is None:
                self._engine = create_engine_from_settings(self.settings.storage)

            metadata = MetaData()
            store = MetadataStore(namespace, metadata)
            index = build_vector_index(
                self.settings.storage.vector_backend,
                self._engine,
                namespace,
                self.provider.dimensions,
                metadata,
            )

            storage = self.settings.storage
            try:
                async with self._engine.begin() as conn:
                    if storage.drop_index:
                        await index.drop(conn)
                        await store.drop(conn)
                    await store.create(conn)
                    await index.create(conn)
                    if storage.drop_keys and not storage.drop_index:
                        await index.clear(conn)
                        await store.clear(conn)
            except SQLAlchemyError as e:
                await logger.aerror(
                    "cache.connect.error", namespace=namespace.token, error=str(e)
                )
                raise StorageError(
                    "Failed to initialize cache storage",
                    details={"namespace": namespace.token},
                ) from e

            self.namespace = namespace
            self._store = store
            self._index = index
            self._sweeper = MaintenanceSweeper(
                self._engine, store, index, self._cache_settings, self._clock
            )

            await logger.ainfo(
                "cache.connected",
                model=self.provider.model,
                dimensions=self.provider.dimensions,
                namespace=namespace.token,
                vector_backend=index.backend,
                dropped_index=storage.drop_index,
                dropped_keys=storage.drop_keys and not storage.drop_index,
            )

    async def disconnect(self) -> None:
        self._sweeper = None
        self._store = None
        self._index = None
        self.namespace = None
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None
        await self.provider.close()

    async def __aenter__(self) -> SemanticCache:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    def _require_connected(self) -> tuple[AsyncEngine, MetadataStore, VectorIndex]:
        if (
            self._sweeper is None
            or self._engine is None
            or self._store is None
            or self._index is None
        ):
            raise NotConnectedError("SemanticCache.connect() must be awaited first")
        return self._engine, self._store, self._index

    # Admission

    async def set(
        self,
        query: str,
        result: Any,
        *,
        tags: Iterable[str] | None = None,
    ) -> bool:
        """
        Store `result` under `query`, replacing any entry with the same text.

        Raises EmbeddingError, SerializationError or StorageError; on
        StorageError nothing was written.
        """
        engine, store, index = self._require_connected()

        serialized = dump_result(result)
        tags_serialized = dump_tags(tags)
        key = fingerprint(query)
        vector = await self.provider.embed(query)
        timestamp = self._clock()

        try:
            async with engine.begin() as conn:
                previous_id = await store.delete_by_key(conn, key)
                if previous_id is not None:
                    await index.delete(conn, [previous_id])
                entry_id = await store.insert(
                    conn,
                    key=key,
                    query=query,
                    result=serialized,
                    timestamp=timestamp,
                    tags=tags_serialized,
                )
                await index.upsert(conn, entry_id, vector)
        except SQLAlchemyError as e:
            await logger.aerror("cache.store.error", key=key[:12], error=str(e))
            raise StorageError(
                "Failed to write cache entry",
                details={"key": key[:12]},
            ) from e

        if previous_id is not None:
            await logger.adebug("cache.superseded", key=key[:12], entry_id=previous_id)

        await logger.adebug(
            "cache.stored",
            key=key[:12],
            entry_id=entry_id,
            tags=tags_serialized,
        )
        return True

    # Lookup

    async def get(
        self,
        query: str,
        *,
        tags: Iterable[str] | None = None,
    ) -> CacheHit | None:
        """
        Return the closest entry passing threshold, TTL and tag checks.

        A storage failure is logged and reported as a miss. An embedding
        failure is also a miss when `cache.degrade_embedding_errors` is set,
        otherwise it propagates. Dimension mismatches always propagate.
        """
        self._require_connected()
        wanted = canonical_tags(tags)

        try:
            vector = await self.provider.embed(query)
        except DimensionMismatchError:
            raise
        except EmbeddingError as e:
            if not self._cache_settings.degrade_embedding_errors:
                raise
            await logger.awarning("cache.lookup.embedding_failed", error=e.message)
            return None

        try:
            hit = await self._search(vector, wanted)
        except SQLAlchemyError as e:
            await logger.aerror("cache.lookup.error", error=str(e))
            return None

        if hit is None:
            await logger.adebug("cache.miss", tags=wanted)
        else:
            await logger.ainfo(
                "cache.hit",
                similarity=f"{hit.similarity:.4f}",
                threshold=self._cache_settings.similarity_threshold,
                tags=wanted,
            )
        return hit

    async def _search(self, vector: list[float], wanted: list[str]) -> CacheHit | None:
        engine, store, index = self._require_connected()
        cfg = self._cache_settings

        # One candidate is enough without tags; tag filtering happens after
        # the KNN query, so fetch a wider batch up front.
        k = min(cfg.tag_fanout if wanted else 1, cfg.max_fanout)
        evaluated: set[int] = set()

        while True:
            async with engine.connect() as conn:
                neighbors = await index.knn(conn, vector, k)
                fresh = [n for n in neighbors if n.id not in evaluated]
                records = await store.get_many(conn, [n.id for n in fresh])

            for neighbor in fresh:
                evaluated.add(neighbor.id)
                if neighbor.distance > cfg.max_distance:
                    return None

                record = records.get(neighbor.id)
                if record is None:
                    continue

                if self._is_expired(record):
                    await self._expire(neighbor)
                    continue

                entry_tags = load_tags(record.tags)
                if wanted and not set(wanted).issubset(entry_tags):
                    continue

                return CacheHit(
                    query=record.query,
                    result=load_result(record.result),
                    timestamp=record.timestamp,
                    score=neighbor.distance,
                    tags=entry_tags,
                )

            # Every candidate was skipped. Widen only if the index may hold more.
            if len(neighbors) < k or k >= cfg.max_fanout:
                return None
            k = min(max(k * 2, cfg.tag_fanout), cfg.max_fanout)

    def _is_expired(self, record: MetadataRecord) -> bool:
        ttl = self._cache_settings.ttl_seconds
        if ttl == -1:
            return False
        return self._clock() - record.timestamp > ttl * 1000

    async def _expire(self, neighbor: Neighbor) -> None:
        """Best-effort delete of an expired entry; a concurrent delete is a no-op."""
        engine, store, index = self._require_connected()
        try:
            async with engine.begin() as conn:
                await index.delete(conn, [neighbor.id])
                await store.delete_by_ids(conn, [neighbor.id])
        except SQLAlchemyError as e:
            await logger.awarning("cache.expire.error", entry_id=neighbor.id, error=str(e))
            return
        await logger.adebug("cache.expired", entry_id=neighbor.id, distance=neighbor.distance)

    # Maintenance

    @property
    def sweeper(self) -> MaintenanceSweeper:
        if self._sweeper is None:
            raise NotConnectedError("SemanticCache.connect() must be awaited first")
        return self._sweeper

    async def invalidate_old(self, max_age_seconds: float) -> int:
        return await self.sweeper.invalidate_old(max_age_seconds)

    async def purge_expired(self) -> int:
        return await self.sweeper.purge_expired()

    async def drop_keys(self) -> None:
        await self.sweeper.drop_keys()

    async def stats(self) -> CacheStats:
        return await self.sweeper.stats()
