"""
Record Store Interface

This module defines the store abstraction the URL record service talks to.
The service never issues queries itself; it only uses the operations below,
so a document store or key-value store can replace the SQL implementation.

Every operation is a coroutine and may suspend on network I/O. Implementations
must raise ShortenerError (SERVICE_UNAVAILABLE for connectivity failures and
timeouts, CONFLICT when a short code is already taken) rather than driver
exceptions.
"""

from abc import ABC, abstractmethod
from typing import Optional

from shortlink.db.models import UrlRecord


class RecordStore(ABC):
    """
    Abstract base class for record stores.

    Mutating operations on a single short code must be atomic: the find and
    the write happen in one store operation so concurrent callers never lose
    an update.
    """

    @abstractmethod
    async def create(self, target_url: str, short_code: str) -> UrlRecord:
        """
        Persist a new record with access_count 0.

        Raises:
            ShortenerError: CONFLICT if short_code already exists
        """
        pass

    @abstractmethod
    async def find_by_code(self, short_code: str) -> Optional[UrlRecord]:
        """Return the record for short_code, or None. Never mutates."""
        pass

    @abstractmethod
    async def find_and_increment(self, short_code: str) -> Optional[UrlRecord]:
        """
        Atomically add one to access_count, refresh updated_at and return the
        updated record, or None if no record exists.
        """
        pass

    @abstractmethod
    async def find_and_update_target(
        self,
        short_code: str,
        target_url: str
    ) -> Optional[UrlRecord]:
        """Atomically replace target_url and refresh updated_at; None if absent."""
        pass

    @abstractmethod
    async def find_and_delete(self, short_code: str) -> bool:
        """Atomically remove the record; False if there was nothing to remove."""
        pass

    @abstractmethod
    async def exists(self, short_code: str) -> bool:
        """Whether a live record currently holds short_code."""
        pass
