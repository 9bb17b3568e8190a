"""Database engine and session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from traptally.config import Settings
from traptally.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transactional_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session that commits on success and rolls back on any error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            # includes CancelledError from the sync run deadline
            await session.rollback()
            raise


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


class Database:
    """Database connection and session manager."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        url = settings.database.url

        engine_kwargs: dict[str, Any] = {
            "echo": settings.database.echo,
            "pool_pre_ping": settings.database.pool_pre_ping,
        }

        if "postgresql" in url:
            engine_kwargs.update(
                {
                    "pool_size": settings.database.pool_size,
                    "max_overflow": settings.database.max_overflow,
                    "pool_timeout": settings.database.pool_timeout,
                    "pool_recycle": settings.database.pool_recycle,
                }
            )
        elif _is_memory_sqlite(url):
            # Hey future me - an in-memory SQLite db lives and dies with its connection.
            # StaticPool hands every session the SAME connection, otherwise each session
            # would see an empty database without our tables.
            engine_kwargs.update(
                {
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                }
            )
        elif url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": 30,  # wait up to 30s for the write lock
            }

        self._engine = create_async_engine(url, **engine_kwargs)

        if url.startswith("sqlite"):
            self._enable_sqlite_foreign_keys()

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    def _enable_sqlite_foreign_keys(self) -> None:
        """Turn on foreign key enforcement for every SQLite connection."""

        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    def session_scope(self) -> AbstractAsyncContextManager[AsyncSession]:
        """Provide a transactional scope: commit on success, rollback on error."""
        return transactional_session(self._session_factory)

    async def close(self) -> None:
        """Dispose the engine and its connections."""
        await self._engine.dispose()

    async def create_tables(self) -> None:
        """Create all tables. Schema migrations are not managed here."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("Database tables ensured")
