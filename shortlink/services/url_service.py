"""
URL Record Service

This service owns the lifecycle of URL records:
- Create: validate the target, allocate a short code, persist with access_count 0
- Resolve: atomically bump access_count and return the record for redirecting
- Update: replace the target URL, keeping short code and counter
- Delete: remove the record for good
- Stats: read the record without touching the counter

Design Decisions:
- Random codes from a URL-safe alphabet, checked against the store before use
- Store-level unique index as the safety net for concurrent creates; a lost
  race is retried with a fresh code instead of reaching the caller
- Every mutation is a single atomic store operation (no read-modify-write)
- Failures are raised as ShortenerError with an ErrorKind; the HTTP layer
  maps kinds to status codes
"""

import logging
from typing import Iterable

from shortlink.core.exceptions import ErrorKind, ShortenerError
from shortlink.core.validators import is_valid_url, sanitize_short_code
from shortlink.db.interface import RecordStore
from shortlink.db.models import UrlRecord
from shortlink.services.code_generator import CodeGenerator

logger = logging.getLogger(__name__)


class URLRecordService:
    """
    Core business logic for URL records.

    This is the only component that writes to the record store.

    Args:
        store: Record store
        generator: Short code generator (normally sharing the same store)
        allowed_schemes: Schemes accepted for target URLs, empty for any
        max_url_length: Longest accepted target URL
    """

    def __init__(
        self,
        store: RecordStore,
        generator: CodeGenerator,
        allowed_schemes: Iterable[str] = (),
        max_url_length: int = 2048,
    ):
        self.store = store
        self.generator = generator
        self.allowed_schemes = tuple(allowed_schemes)
        self.max_url_length = max_url_length

    def _validate_target(self, target_url: str) -> str:
        if not is_valid_url(target_url, self.allowed_schemes, self.max_url_length):
            if self.allowed_schemes:
                schemes = " or ".join(s + "://" for s in self.allowed_schemes)
                message = f"Invalid URL. Provide an absolute URL using {schemes} with a host"
            else:
                message = "Invalid URL. Provide an absolute URL with a scheme and a host"
            raise ShortenerError.validation(
                message,
                detail=f"rejected target: {str(target_url)[:200]}",
            )
        return target_url

    def _checked_code(self, short_code: str) -> str:
        # Codes outside the generator alphabet can never exist in the store
        sanitized = sanitize_short_code(short_code, self.generator.alphabet)
        if sanitized is None:
            raise ShortenerError.not_found(short_code)
        return sanitized

    async def create(self, target_url: str) -> UrlRecord:
        """
        Create a new record for target_url.

        Returns:
            The stored record with its new short code

        Raises:
            ShortenerError: VALIDATION for a malformed URL, CONFLICT if every
                write lost a uniqueness race, INTERNAL if no free code was
                found, SERVICE_UNAVAILABLE on store failure
        """
        self._validate_target(target_url)

        for attempt in range(1, self.generator.max_attempts + 1):
            short_code = await self.generator.generate()
            try:
                record = await self.store.create(target_url, short_code)
            except ShortenerError as e:
                if e.kind is not ErrorKind.CONFLICT:
                    raise
                logger.warning(
                    f"Short code '{short_code}' taken by a concurrent create, "
                    f"retrying ({attempt}/{self.generator.max_attempts})"
                )
                continue

            logger.info(f"Created short code '{record.short_code}'")
            return record

        raise ShortenerError(
            ErrorKind.CONFLICT,
            "Could not allocate a unique short code, please retry",
            detail=f"{self.generator.max_attempts} writes rejected by the unique index",
        )

    async def resolve(self, short_code: str) -> UrlRecord:
        """
        Look up a code and count the access.

        The increment and the fetch are one store operation, so concurrent
        resolves of the same code never lose an increment.

        Raises:
            ShortenerError: NOT_FOUND if no record has this code
        """
        short_code = self._checked_code(short_code)
        record = await self.store.find_and_increment(short_code)
        if record is None:
            raise ShortenerError.not_found(short_code)
        return record

    async def update(self, short_code: str, new_target_url: str) -> UrlRecord:
        """
        Point an existing code at a new target URL.

        Raises:
            ShortenerError: VALIDATION for a malformed URL, NOT_FOUND if absent
        """
        self._validate_target(new_target_url)
        short_code = self._checked_code(short_code)

        record = await self.store.find_and_update_target(short_code, new_target_url)
        if record is None:
            raise ShortenerError.not_found(short_code)

        logger.info(f"Updated target of '{short_code}'")
        return record

    async def delete(self, short_code: str) -> None:
        """
        Remove a record. Deleting an already deleted code is NOT_FOUND again.
        """
        short_code = self._checked_code(short_code)
        if not await self.store.find_and_delete(short_code):
            raise ShortenerError.not_found(short_code)
        logger.info(f"Deleted short code '{short_code}'")

    async def stats(self, short_code: str) -> UrlRecord:
        """Return the record without counting an access."""
        short_code = self._checked_code(short_code)
        record = await self.store.find_by_code(short_code)
        if record is None:
            raise ShortenerError.not_found(short_code)
        return record
