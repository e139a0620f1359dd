"""
Database Session Management

The Database object is the single owner of the engine and session factory.
It is created by the application factory, handed to the record store, and
shut down with the application; nothing else holds a connection.

Lifecycle:
- initialize(): build engine and session factory (also done lazily on first use)
- create_schema() / drop_schema(): create missing tables, drop them all
- session(): async context manager yielding a session, rolled back on error
- shutdown(): dispose the engine and its pooled connections
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from shortlink.db import models  # noqa: F401  registers tables on SQLModel.metadata
from shortlink.db.adapters import get_database_adapter

logger = logging.getLogger(__name__)


class Database:
    """
    Lazily initialised connection handle for the record store.

    Args:
        database_url: SQLAlchemy async connection string
        connect_timeout: Seconds allowed for connecting or waiting on a lock
    """

    def __init__(self, database_url: str, connect_timeout: float = 5.0):
        self.database_url = database_url
        self.connect_timeout = connect_timeout
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker] = None

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(settings.DATABASE_URL, connect_timeout=settings.STORE_CONNECT_TIMEOUT)

    @property
    def engine(self) -> AsyncEngine:
        self.initialize()
        return self._engine

    def initialize(self) -> None:
        """Create the engine and session factory; no-op when already done."""
        if self._engine is not None:
            return

        adapter = get_database_adapter(self.database_url, self.connect_timeout)
        self._engine = adapter.create_engine(self.database_url)
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Records are returned after the session closes
            autoflush=False,
        )
        logger.info(f"Database engine initialized ({adapter.get_dialect_name()})")

    async def create_schema(self) -> None:
        """Create tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def drop_schema(self) -> None:
        """Drop every table of the record store."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session from the factory.

        Rolls back on any exception (including cancellation by a timeout), so
        an interrupted operation leaves nothing half-written.
        """
        self.initialize()
        async with self._session_maker() as session:
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise

    async def shutdown(self) -> None:
        """Dispose of the engine; the handle can be initialised again afterwards."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("Database engine disposed")
