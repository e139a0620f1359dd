"""Shared pytest fixtures: a temp-file SQLite store, the service stack and an API client."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from shortlink.core.rate_limit import RatePolicyGate
from shortlink.core.setting import Settings
from shortlink.db.models import UrlRecord
from shortlink.db.session import Database
from shortlink.db.sql_store import SQLRecordStore
from shortlink.main import create_app
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.url_service import URLRecordService


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortlink-test.db'}",
        AUTO_CREATE_SCHEMA=False,
        LOG_LEVEL="WARNING",
        # Generous lock waits: the concurrency tests queue many SQLite writers
        STORE_CONNECT_TIMEOUT=30.0,
        STORE_OPERATION_TIMEOUT=60.0,
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database.from_settings(settings)
    await db.create_schema()
    yield db
    await db.drop_schema()
    await db.shutdown()


@pytest.fixture
def store(database: Database, settings: Settings) -> SQLRecordStore:
    return SQLRecordStore(database, operation_timeout=settings.STORE_OPERATION_TIMEOUT)


@pytest.fixture
def generator(store: SQLRecordStore, settings: Settings) -> CodeGenerator:
    return CodeGenerator(
        store,
        length=settings.SHORT_CODE_LENGTH,
        alphabet=settings.SHORT_CODE_ALPHABET,
        max_attempts=settings.SHORT_CODE_MAX_ATTEMPTS,
    )


@pytest.fixture
def url_service(store: SQLRecordStore, generator: CodeGenerator) -> URLRecordService:
    return URLRecordService(store, generator)


@pytest.fixture
def rate_gate(settings: Settings) -> RatePolicyGate:
    return RatePolicyGate.from_settings(settings)


@pytest_asyncio.fixture
async def client(
    settings: Settings,
    database: Database,
    rate_gate: RatePolicyGate,
) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(settings, database=database, rate_gate=rate_gate)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def record_count(database: Database):
    """Async callable returning the number of stored records."""
    async def count() -> int:
        async with database.session() as session:
            result = await session.execute(select(func.count()).select_from(UrlRecord))
            return result.scalar_one()

    return count
