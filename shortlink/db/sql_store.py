"""
SQL Record Store

RecordStore implementation on SQLAlchemy/SQLModel.

Each operation opens its own short session and runs a single statement, so
the find and the write of resolve, update and delete are one atomic
UPDATE/DELETE ... RETURNING rather than a read followed by a write.

Failures are classified before they leave the store: the unique index on
short_code turns into CONFLICT, connectivity problems and timeouts into
SERVICE_UNAVAILABLE.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import delete, select, update

from shortlink.core.error_classifier import classify
from shortlink.core.exceptions import ShortenerError
from shortlink.db.interface import RecordStore
from shortlink.db.models import UrlRecord, utcnow
from shortlink.db.session import Database

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLRecordStore(RecordStore):
    """
    Record store backed by the `url_records` table.

    Args:
        database: Owned connection handle
        operation_timeout: Seconds before a store operation is abandoned
    """

    def __init__(self, database: Database, operation_timeout: float = 10.0):
        self.database = database
        self.operation_timeout = operation_timeout

    async def _run(self, operation: str, action: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(action(), timeout=self.operation_timeout)
        except ShortenerError:
            raise
        except Exception as e:
            raise classify(e, operation) from e

    async def create(self, target_url: str, short_code: str) -> UrlRecord:
        async def action() -> UrlRecord:
            async with self.database.session() as session:
                record = UrlRecord(
                    target_url=target_url,
                    short_code=short_code,
                    access_count=0
                )
                session.add(record)
                await session.commit()
                return record

        return await self._run("create", action)

    async def find_by_code(self, short_code: str) -> Optional[UrlRecord]:
        async def action() -> Optional[UrlRecord]:
            async with self.database.session() as session:
                statement = select(UrlRecord).where(UrlRecord.short_code == short_code)
                result = await session.execute(statement)
                return result.scalar_one_or_none()

        return await self._run("find", action)

    async def find_and_increment(self, short_code: str) -> Optional[UrlRecord]:
        async def action() -> Optional[UrlRecord]:
            async with self.database.session() as session:
                # Database-level increment: concurrent resolves each see a distinct prior value
                statement = (
                    update(UrlRecord)
                    .where(UrlRecord.short_code == short_code)
                    .values(access_count=UrlRecord.access_count + 1, updated_at=utcnow())
                    .returning(UrlRecord)
                )
                result = await session.execute(statement)
                record = result.scalars().first()
                await session.commit()
                return record

        return await self._run("resolve", action)

    async def find_and_update_target(
        self,
        short_code: str,
        target_url: str
    ) -> Optional[UrlRecord]:
        async def action() -> Optional[UrlRecord]:
            async with self.database.session() as session:
                statement = (
                    update(UrlRecord)
                    .where(UrlRecord.short_code == short_code)
                    .values(target_url=target_url, updated_at=utcnow())
                    .returning(UrlRecord)
                )
                result = await session.execute(statement)
                record = result.scalars().first()
                await session.commit()
                return record

        return await self._run("update", action)

    async def find_and_delete(self, short_code: str) -> bool:
        async def action() -> bool:
            async with self.database.session() as session:
                statement = (
                    delete(UrlRecord)
                    .where(UrlRecord.short_code == short_code)
                    .returning(UrlRecord.id)
                )
                result = await session.execute(statement)
                deleted = result.first() is not None
                await session.commit()
                return deleted

        return await self._run("delete", action)

    async def exists(self, short_code: str) -> bool:
        async def action() -> bool:
            async with self.database.session() as session:
                statement = select(UrlRecord.id).where(UrlRecord.short_code == short_code).limit(1)
                result = await session.execute(statement)
                return result.first() is not None

        return await self._run("exists", action)
