"""
Metadata store: one row per cache entry, keyed by the id shared with the
vector index.

All methods take an open AsyncConnection so that callers can group several
operations (and vector index writes) into one transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import (
    BigInteger,
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    delete,
    func,
    select,
)
from sqlalchemy.ext.asyncio import AsyncConnection

from seekmix.core.namespace import Namespace


@dataclass(frozen=True)
class MetadataRecord:
    id: int
    key: str
    query: str
    result: str     # serialized JSON
    timestamp: int  # ms since epoch
    tags: str       # serialized, sorted JSON array


class MetadataStore:
    def __init__(self, namespace: Namespace, metadata: MetaData) -> None:
        self.namespace = namespace
        self.table = Table(
            namespace.cache_table,
            metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("key", String(64), nullable=False, unique=True),
            Column("query", Text, nullable=False),
            Column("result", Text, nullable=False),
            Column("timestamp", BigInteger, nullable=False),
            Column("tags", Text, nullable=False, server_default="[]"),
            Index(f"ix_{namespace.cache_table}_ts", "timestamp"),
            sqlite_autoincrement=True,  # never reuse ids of deleted rows
        )

    async def create(self, conn: AsyncConnection) -> None:
        await conn.run_sync(self.table.create, checkfirst=True)

    async def drop(self, conn: AsyncConnection) -> None:
        await conn.run_sync(self.table.drop, checkfirst=True)

    async def insert(
        self,
        conn: AsyncConnection,
        *,
        key: str,
        query: str,
        result: str,
        timestamp: int,
        tags: str,
    ) -> int:
        """Insert a row and return its freshly assigned id."""
        res = await conn.execute(
            self.table.insert().values(
                key=key, query=query, result=result, timestamp=timestamp, tags=tags
            )
        )
        return int(res.inserted_primary_key[0])

    async def get_many(self, conn: AsyncConnection, ids: Iterable[int]) -> dict[int, MetadataRecord]:
        ids = list(ids)
        if not ids:
            return {}
        res = await conn.execute(select(self.table).where(self.table.c.id.in_(ids)))
        return {row.id: MetadataRecord(**row._mapping) for row in res}

    async def get(self, conn: AsyncConnection, entry_id: int) -> MetadataRecord | None:
        return (await self.get_many(conn, [entry_id])).get(entry_id)

    async def find_id_by_key(self, conn: AsyncConnection, key: str) -> int | None:
        res = await conn.execute(select(self.table.c.id).where(self.table.c.key == key))
        return res.scalar_one_or_none()

    async def delete_by_key(self, conn: AsyncConnection, key: str) -> int | None:
        """Delete the row holding `key`; returns its id, or None if absent."""
        entry_id = await self.find_id_by_key(conn, key)
        if entry_id is not None:
            await self.delete_by_ids(conn, [entry_id])
        return entry_id

    async def delete_by_ids(self, conn: AsyncConnection, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        res = await conn.execute(delete(self.table).where(self.table.c.id.in_(ids)))
        return res.rowcount or 0

    async def scan_older_than(self, conn: AsyncConnection, cutoff_ms: int) -> list[int]:
        res = await conn.execute(
            select(self.table.c.id)
            .where(self.table.c.timestamp < cutoff_ms)
            .order_by(self.table.c.id)
        )
        return list(res.scalars())

    async def clear(self, conn: AsyncConnection) -> int:
        res = await conn.execute(delete(self.table))
        return res.rowcount or 0

    async def count(self, conn: AsyncConnection) -> int:
        res = await conn.execute(select(func.count()).select_from(self.table))
        return int(res.scalar_one())

    async def count_older_than(self, conn: AsyncConnection, cutoff_ms: int) -> int:
        res = await conn.execute(
            select(func.count())
            .select_from(self.table)
            .where(self.table.c.timestamp < cutoff_ms)
        )
        return int(res.scalar_one())

    async def timestamp_bounds(self, conn: AsyncConnection) -> tuple[int | None, int | None]:
        res = await conn.execute(
            select(func.min(self.table.c.timestamp), func.max(self.table.c.timestamp))
        )
        oldest, newest = res.one()
        return oldest, newest

    async def ids(self, conn: AsyncConnection) -> set[int]:
        res = await conn.execute(select(self.table.c.id))
        return set(res.scalars())
