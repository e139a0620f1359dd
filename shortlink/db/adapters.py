"""
Database Adapters

Each adapter encapsulates the engine configuration of one database backend,
so the rest of the code never branches on the dialect.

- SQLiteAdapter: file-based, default for development and tests
- PostgreSQLAdapter: asyncpg driver, pooled connections for production

To add a new database backend:
1. Create a new class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register its URL prefix in get_database_adapter()
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool, Pool


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Args:
        connect_timeout: Seconds allowed for establishing a connection
    """

    def __init__(self, connect_timeout: float = 5.0):
        self.connect_timeout = connect_timeout

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine options (merged over adapter defaults)
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        pool_class = self.get_pool_class()
        if pool_class is not None:
            engine_kwargs["poolclass"] = pool_class

        return create_async_engine(
            database_url,
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """Pool class for this database type, or None for SQLAlchemy's default."""
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """DBAPI connect() arguments, including the connect timeout."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Extra create_async_engine() options."""
        pass

    @abstractmethod
    def get_dialect_name(self) -> str:
        pass


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    Uses NullPool so every session gets its own connection; SQLite serialises
    writers with file locks and `timeout` bounds how long a writer waits for one.
    In-memory databases do not work with NullPool, use a file path.
    """

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": self.connect_timeout,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def get_dialect_name(self) -> str:
        return "sqlite"


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL adapter for the asyncpg driver.

    Connections are pooled and pinged before use so a dropped connection
    surfaces as a reconnect instead of a failed request.
    """

    def get_pool_class(self) -> None:
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {"timeout": self.connect_timeout}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_pre_ping": True,
            "pool_timeout": self.connect_timeout,
            "pool_recycle": 1800,
        }

    def get_dialect_name(self) -> str:
        return "postgresql"


def get_database_adapter(database_url: str, connect_timeout: float = 5.0) -> DatabaseAdapter:
    """
    Pick the adapter for a connection string.

    Raises:
        ValueError: If the URL's backend has no adapter
    """
    if database_url.startswith("sqlite"):
        return SQLiteAdapter(connect_timeout)
    if database_url.startswith("postgresql"):
        return PostgreSQLAdapter(connect_timeout)
    raise ValueError(f"Unsupported database URL: {database_url.split(':', 1)[0]}")
