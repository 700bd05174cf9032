"""Async engine construction."""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from seekmix.config import StorageSettings


def create_engine_from_settings(settings: StorageSettings) -> AsyncEngine:
    url = make_url(settings.url)

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(url, echo=settings.echo)

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=10000")
            cursor.close()

        return engine

    return create_async_engine(
        url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=300,
    )
