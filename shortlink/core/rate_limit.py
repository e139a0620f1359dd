"""
Rate Policy Gate

This module provides rate limiting for the shortener operations.
Rate limiting prevents abuse and ensures fair usage.

Design Decisions:
- Fixed windows from the `limits` library (the engine slowapi is built on)
- Four independent policies per client: global, create, read, modify
- Every request hits the global policy first, then its operation's policy
- A hit is one atomic increment-and-compare, so the rejected request is counted too
- Client identity is the remote address, as slowapi resolves it

Counters live in process memory. Running several instances behind a load
balancer needs a shared `limits` storage (e.g. Redis) passed in as `storage`.
"""

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

from limits import RateLimitItem, parse
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from shortlink.core.exceptions import ErrorKind, ShortenerError

logger = logging.getLogger(__name__)


class OperationClass(str, Enum):
    """Policy classes; GLOBAL applies to every gated request."""

    GLOBAL = "global"
    CREATE = "create"
    READ = "read"
    MODIFY = "modify"


# Which policy each core operation is charged against
OPERATION_CLASSES = {
    "create": OperationClass.CREATE,
    "resolve": OperationClass.READ,
    "stats": OperationClass.READ,
    "update": OperationClass.MODIFY,
    "delete": OperationClass.MODIFY,
}

_REJECTION_MESSAGES = {
    OperationClass.GLOBAL: "Too many requests from this client, please try again later.",
    OperationClass.CREATE: "Too many URL creation requests from this client, please try again later.",
    OperationClass.READ: "Too many requests from this client, please try again after a minute.",
    OperationClass.MODIFY: "Too many modification requests from this client, please try again later.",
}


@dataclass(frozen=True)
class QuotaStatus:
    """Remaining quota of one policy for one client after a hit."""

    policy: OperationClass
    limit: int
    remaining: int
    reset_at: float

    @property
    def reset_after(self) -> int:
        """Whole seconds until the current window ends."""
        return max(0, math.ceil(self.reset_at - time.time()))

    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class RatePolicyGate:
    """
    Admits or rejects requests per client before the service runs.

    Args:
        policies: Limit per policy class, as RateLimitItem or "count/period" string
        storage: `limits` async storage; defaults to a fresh in-memory storage
        enabled: When False every request is admitted without counting
    """

    def __init__(
        self,
        policies: Mapping[OperationClass, Union[str, RateLimitItem]],
        storage: Optional[Storage] = None,
        enabled: bool = True,
    ):
        missing = set(OperationClass) - set(policies)
        if missing:
            raise ValueError(f"Missing rate policies: {sorted(p.value for p in missing)}")

        self.policies = {
            policy: parse(value) if isinstance(value, str) else value
            for policy, value in policies.items()
        }
        self.storage = storage or MemoryStorage()
        self.limiter = FixedWindowRateLimiter(self.storage)
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings) -> "RatePolicyGate":
        return cls(
            {
                OperationClass.GLOBAL: settings.RATE_LIMIT_GLOBAL,
                OperationClass.CREATE: settings.RATE_LIMIT_CREATE,
                OperationClass.READ: settings.RATE_LIMIT_READ,
                OperationClass.MODIFY: settings.RATE_LIMIT_MODIFY,
            },
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    async def admit(self, client_id: str, operation: str) -> Optional[QuotaStatus]:
        """
        Charge one request from `client_id` for `operation`.

        Returns:
            Quota of the operation's own policy, or None when the gate is disabled

        Raises:
            ShortenerError: RATE_LIMITED when the global or class policy is exhausted
            KeyError: If `operation` is not a known core operation
        """
        operation_class = OPERATION_CLASSES[operation]
        if not self.enabled:
            return None

        for policy in (OperationClass.GLOBAL, operation_class):
            limit = self.policies[policy]
            if not await self.limiter.hit(limit, policy.value, client_id):
                status = await self._status(policy, client_id)
                logger.warning(
                    f"Rate limit exceeded: client={client_id} policy={policy.value} "
                    f"limit={limit}"
                )
                raise ShortenerError(
                    ErrorKind.RATE_LIMITED,
                    _REJECTION_MESSAGES[policy],
                    detail=f"{policy.value} policy {limit}",
                    retry_after=max(1, status.reset_after),
                    headers=status.headers(),
                )
        return await self._status(operation_class, client_id)

    async def _status(self, policy: OperationClass, client_id: str) -> QuotaStatus:
        limit = self.policies[policy]
        stats = await self.limiter.get_window_stats(limit, policy.value, client_id)
        return QuotaStatus(
            policy=policy,
            limit=limit.amount,
            remaining=stats.remaining,
            reset_at=stats.reset_time,
        )

    async def reset(self) -> None:
        """Drop every counter (all clients, all policies)."""
        await self.storage.reset()


def get_client_identity(request: Request) -> str:
    """Client key used for rate limiting: the remote address."""
    return get_remote_address(request)
