"""
Bulk maintenance for one namespace.

TTL expiry in the engine is lazy (discovered on read). The sweeper is the
explicit, caller-driven counterpart: age-based invalidation, full reset,
and statistics. Nothing here runs on a timer.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import asdict, dataclass
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from seekmix.common.errors import StorageError
from seekmix.config import CacheSettings
from seekmix.storage.metadata_store import MetadataStore
from seekmix.storage.vector_index import VectorIndex

logger = structlog.stdlib.get_logger()

# Keeps IN (...) lists under SQLite's bound-parameter limit
_DELETE_BATCH = 500


@dataclass
class CacheStats:
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

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _chunks(ids: list[int], size: int = _DELETE_BATCH) -> Iterator[list[int]]:
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


class MaintenanceSweeper:
    def __init__(
        self,
        engine: AsyncEngine,
        store: MetadataStore,
        index: VectorIndex,
        settings: CacheSettings,
        clock: Callable[[], int],
    ) -> None:
        self._engine = engine
        self._store = store
        self._index = index
        self._settings = settings
        self._clock = clock

    async def invalidate_old(self, max_age_seconds: float) -> int:
        """
        Delete every entry created more than `max_age_seconds` ago.

        Returns the number of entries removed (0 when nothing matched).
        """
        if max_age_seconds < 0:
            raise ValueError("max_age_seconds must be >= 0")

        cutoff = self._clock() - int(max_age_seconds * 1000)
        try:
            async with self._engine.begin() as conn:
                stale = await self._store.scan_older_than(conn, cutoff)
                for batch in _chunks(stale):
                    await self._index.delete(conn, batch)
                    await self._store.delete_by_ids(conn, batch)
        except SQLAlchemyError as e:
            await logger.aerror("sweeper.invalidate.error", error=str(e))
            raise StorageError(
                "Failed to invalidate old cache entries",
                details={"namespace": self._store.namespace.token},
            ) from e

        await logger.ainfo(
            "sweeper.invalidated",
            namespace=self._store.namespace.token,
            max_age_seconds=max_age_seconds,
            removed=len(stale),
        )
        return len(stale)

    async def purge_expired(self) -> int:
        """Eagerly apply the configured TTL. No-op when expiration is disabled."""
        if not self._settings.expires:
            return 0
        return await self.invalidate_old(self._settings.ttl_seconds)

    async def drop_keys(self) -> None:
        """Delete every entry in the namespace."""
        try:
            async with self._engine.begin() as conn:
                await self._index.clear(conn)
                removed = await self._store.clear(conn)
        except SQLAlchemyError as e:
            await logger.aerror("sweeper.drop_keys.error", error=str(e))
            raise StorageError(
                "Failed to delete cache entries",
                details={"namespace": self._store.namespace.token},
            ) from e

        await logger.ainfo(
            "sweeper.dropped", namespace=self._store.namespace.token, removed=removed
        )

    async def stats(self) -> CacheStats:
        try:
            async with self._engine.connect() as conn:
                total = await self._store.count(conn)
                expired = 0
                if self._settings.expires:
                    cutoff = self._clock() - self._settings.ttl_seconds * 1000
                    expired = await self._store.count_older_than(conn, cutoff)
                oldest, newest = await self._store.timestamp_bounds(conn)
                orphaned = len(await self._index.ids(conn) - await self._store.ids(conn))
        except SQLAlchemyError as e:
            raise StorageError("Failed to read cache statistics") from e

        namespace = self._store.namespace
        return CacheStats(
            namespace=namespace.token,
            model=namespace.model,
            dimensions=self._index.dimensions,
            vector_backend=self._index.backend,
            total_entries=total,
            expired_entries=expired,
            orphaned_vectors=orphaned,
            oldest_timestamp=oldest,
            newest_timestamp=newest,
            ttl_seconds=self._settings.ttl_seconds,
        )
