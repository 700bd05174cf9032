"""
Vector index adapters.

Two backends share one interface:

  NumpyVectorIndex  float32 blobs in a plain table, exact cosine KNN in numpy.
                    Works on any SQL backend; the default for SQLite.
  PgVectorIndex     pgvector column with an HNSW index, KNN pushed down to
                    PostgreSQL with the `<=>` cosine distance operator.

Both rank by ascending cosine distance, ties broken by ascending id.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import NamedTuple

import numpy as np
from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Column,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    Table,
    delete,
    func,
    select,
    text,
)
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from seekmix.common.errors import DimensionMismatchError
from seekmix.config import VectorBackend
from seekmix.core.namespace import Namespace


class Neighbor(NamedTuple):
    id: int
    distance: float


class VectorIndex(ABC):
    backend: str

    def __init__(self, namespace: Namespace, dimensions: int, metadata: MetaData) -> None:
        self.namespace = namespace
        self.dimensions = dimensions
        self.table = self._build_table(metadata)

    @abstractmethod
    def _build_table(self, metadata: MetaData) -> Table: ...

    @abstractmethod
    async def knn(self, conn: AsyncConnection, vector: Sequence[float], k: int) -> list[Neighbor]:
        """Up to `k` nearest ids, ascending by cosine distance."""
        ...

    @abstractmethod
    def _encode(self, vector: Sequence[float]) -> object: ...

    def check_dimensions(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(
                f"Vector has {len(vector)} dimensions, namespace '{self.namespace.token}' "
                f"expects {self.dimensions}",
                details={"expected": self.dimensions, "actual": len(vector)},
            )

    async def create(self, conn: AsyncConnection) -> None:
        await conn.run_sync(self.table.create, checkfirst=True)

    async def drop(self, conn: AsyncConnection) -> None:
        await conn.run_sync(self.table.drop, checkfirst=True)

    async def upsert(self, conn: AsyncConnection, entry_id: int, vector: Sequence[float]) -> None:
        self.check_dimensions(vector)
        await conn.execute(delete(self.table).where(self.table.c.id == entry_id))
        await conn.execute(
            self.table.insert().values(id=entry_id, embedding=self._encode(vector))
        )

    async def delete(self, conn: AsyncConnection, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        res = await conn.execute(delete(self.table).where(self.table.c.id.in_(ids)))
        return res.rowcount or 0

    async def clear(self, conn: AsyncConnection) -> int:
        res = await conn.execute(delete(self.table))
        return res.rowcount or 0

    async def ids(self, conn: AsyncConnection) -> set[int]:
        res = await conn.execute(select(self.table.c.id))
        return set(res.scalars())


# Rounding noise below this is treated as an exact match
DISTANCE_EPSILON = 1e-6

# pgvector rejects hnsw.ef_search above this
MAX_EF_SEARCH = 1000


def snap_distance(distance: float) -> float:
    return 0.0 if distance < DISTANCE_EPSILON else distance


def cosine_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """1 - cosine similarity of every row against `query`; zero vectors score 1.0."""
    matrix = np.asarray(matrix, dtype=np.float64)
    query = np.asarray(query, dtype=np.float64)
    denom = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    with np.errstate(divide="ignore", invalid="ignore"):
        similarity = np.where(denom > 0, (matrix @ query) / denom, 0.0)
    distances = np.clip(1.0 - similarity, 0.0, 2.0)
    distances[distances < DISTANCE_EPSILON] = 0.0
    return distances


class NumpyVectorIndex(VectorIndex):
    backend = "numpy"

    def _build_table(self, metadata: MetaData) -> Table:
        return Table(
            self.namespace.vec_table,
            metadata,
            Column("id", Integer, primary_key=True, autoincrement=False),
            Column("embedding", LargeBinary, nullable=False),
        )

    def _encode(self, vector: Sequence[float]) -> bytes:
        return np.asarray(vector, dtype=np.float32).tobytes()

    def _rank(self, rows: list[tuple[int, bytes]], vector: Sequence[float], k: int) -> list[Neighbor]:
        width = self.dimensions * 4
        for entry_id, blob in rows:
            if len(blob) != width:
                raise DimensionMismatchError(
                    f"Stored vector {entry_id} has {len(blob) // 4} dimensions, "
                    f"namespace '{self.namespace.token}' expects {self.dimensions}",
                    details={"expected": self.dimensions, "actual": len(blob) // 4},
                )

        ids = np.fromiter((r[0] for r in rows), dtype=np.int64, count=len(rows))
        matrix = np.frombuffer(b"".join(r[1] for r in rows), dtype=np.float32)
        matrix = matrix.reshape(len(rows), self.dimensions)

        distances = cosine_distances(matrix, np.asarray(vector, dtype=np.float32))
        # rows arrive ordered by id, so a stable sort breaks ties by id
        order = np.argsort(distances, kind="stable")[:k]
        return [Neighbor(int(ids[i]), float(distances[i])) for i in order]

    async def knn(self, conn: AsyncConnection, vector: Sequence[float], k: int) -> list[Neighbor]:
        self.check_dimensions(vector)
        if k <= 0:
            return []
        res = await conn.execute(
            select(self.table.c.id, self.table.c.embedding).order_by(self.table.c.id)
        )
        rows = [(row.id, row.embedding) for row in res]
        if not rows:
            return []
        return await asyncio.to_thread(self._rank, rows, vector, k)


class PgVectorIndex(VectorIndex):
    backend = "pgvector"

    def _build_table(self, metadata: MetaData) -> Table:
        return Table(
            self.namespace.vec_table,
            metadata,
            Column("id", Integer, primary_key=True, autoincrement=False),
            Column("embedding", Vector(self.dimensions), nullable=False),
            Index(
                f"ix_{self.namespace.vec_table}_hnsw",
                "embedding",
                postgresql_using="hnsw",
                postgresql_ops={"embedding": "vector_cosine_ops"},
            ),
        )

    def _encode(self, vector: Sequence[float]) -> list[float]:
        return [float(x) for x in vector]

    async def create(self, conn: AsyncConnection) -> None:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await super().create(conn)

    async def knn(self, conn: AsyncConnection, vector: Sequence[float], k: int) -> list[Neighbor]:
        self.check_dimensions(vector)
        if k <= 0:
            return []
        # The HNSW scan yields at most ef_search rows; widen it to cover k
        ef_search = min(max(k, 40), MAX_EF_SEARCH)
        await conn.execute(select(func.set_config("hnsw.ef_search", str(ef_search), True)))

        distance = self.table.c.embedding.cosine_distance(self._encode(vector)).label("distance")
        res = await conn.execute(
            select(self.table.c.id, distance)
            .order_by(distance, self.table.c.id)
            .limit(k)
        )
        return [Neighbor(row.id, snap_distance(max(0.0, float(row.distance)))) for row in res]


def build_vector_index(
    backend: VectorBackend,
    engine: AsyncEngine,
    namespace: Namespace,
    dimensions: int,
    metadata: MetaData,
) -> VectorIndex:
    """Pick the index implementation; `auto` uses pgvector on PostgreSQL only."""
    if backend == VectorBackend.AUTO:
        backend = (
            VectorBackend.PGVECTOR
            if engine.dialect.name == "postgresql"
            else VectorBackend.NUMPY
        )
    if backend == VectorBackend.PGVECTOR:
        return PgVectorIndex(namespace, dimensions, metadata)
    return NumpyVectorIndex(namespace, dimensions, metadata)
