"""
Short Code Generator

Draws random fixed-length codes from a URL-safe alphabet and returns the
first one no live record holds.

With the default 64-symbol alphabet and length 6 there are 64**6 (about
6.9e10) codes; after N records the chance that a draw collides is roughly
N / 64**6, so the loop almost always returns on the first draw. The attempt
cap only matters when the store keeps answering "exists", e.g. a
misbehaving backend, and bounds request latency in that case.

Codes of deleted records are not pooled; they simply become drawable again.
"""

import logging
import secrets
from typing import Callable, Optional

from shortlink.core.exceptions import ErrorKind, ShortenerError
from shortlink.core.setting import URL_SAFE_ALPHABET
from shortlink.db.interface import RecordStore

logger = logging.getLogger(__name__)


class CodeGenerator:
    """
    Produces short codes that are free in the store at the time of the check.

    Two generators can still draw the same code concurrently; the store's
    unique index catches that and the URL record service retries.

    Args:
        store: Record store used for the existence check
        length: Number of characters per code
        alphabet: Characters to draw from
        max_attempts: Draws allowed before failing with INTERNAL
        choice: Random choice function, `secrets.choice` unless overridden
    """

    def __init__(
        self,
        store: RecordStore,
        length: int = 6,
        alphabet: str = URL_SAFE_ALPHABET,
        max_attempts: int = 10,
        choice: Optional[Callable[[str], str]] = None,
    ):
        if length < 1:
            raise ValueError("Short code length must be positive")
        if len(set(alphabet)) != len(alphabet) or len(alphabet) < 2:
            raise ValueError("Alphabet must contain at least two distinct characters")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.store = store
        self.length = length
        self.alphabet = alphabet
        self.max_attempts = max_attempts
        self._choice = choice or secrets.choice

    @property
    def combinations(self) -> int:
        return len(self.alphabet) ** self.length

    def draw(self) -> str:
        """One random candidate, not checked against the store."""
        return "".join(self._choice(self.alphabet) for _ in range(self.length))

    async def generate(self) -> str:
        """
        Return a code that no live record uses.

        Raises:
            ShortenerError: INTERNAL if every attempt collided,
                SERVICE_UNAVAILABLE if the store cannot be reached
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.draw()
            if not await self.store.exists(code):
                return code
            logger.warning(f"Short code collision on draw {attempt}/{self.max_attempts}")

        raise ShortenerError(
            ErrorKind.INTERNAL,
            "Could not generate a unique short code",
            detail=f"{self.max_attempts} consecutive draws were already taken",
        )
