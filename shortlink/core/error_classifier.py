"""
Error Classifier

Maps arbitrary failures to a ShortenerError and builds the payload returned
to API consumers.

Store driver messages are kept in `detail` and only leave the process when
debug mode is on.
"""

import asyncio
import logging
from typing import Any, Optional

from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)

from shortlink.core.exceptions import ErrorKind, ShortenerError

logger = logging.getLogger(__name__)

_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
    OSError,
)

_GENERIC_MESSAGES = {
    ErrorKind.SERVICE_UNAVAILABLE: "Service temporarily unavailable, please retry later",
    ErrorKind.INTERNAL: "Internal server error",
}


def classify(error: BaseException, operation: Optional[str] = None) -> ShortenerError:
    """
    Turn any exception into a ShortenerError.

    Args:
        error: The exception to classify
        operation: Name of the failing operation, used in messages

    Returns:
        The original error if it is already a ShortenerError, otherwise a new one
    """
    if isinstance(error, ShortenerError):
        return error

    where = f" during {operation}" if operation else ""
    detail = f"{type(error).__name__}: {error}"

    if isinstance(error, IntegrityError):
        return ShortenerError(ErrorKind.CONFLICT, f"Uniqueness conflict{where}", detail)
    if isinstance(error, _UNAVAILABLE_ERRORS):
        return ShortenerError(
            ErrorKind.SERVICE_UNAVAILABLE,
            f"Record store unavailable{where}",
            detail,
        )
    return ShortenerError(ErrorKind.INTERNAL, f"Unexpected failure{where}", detail)


def to_payload(error: ShortenerError, debug: bool = False) -> dict[str, Any]:
    """
    Build the JSON body for an error response.

    Outside debug mode, SERVICE_UNAVAILABLE and INTERNAL errors get a generic
    message and no detail.
    """
    if debug:
        message = error.message
    else:
        message = _GENERIC_MESSAGES.get(error.kind, error.message)

    payload: dict[str, Any] = {
        "status": "error",
        "kind": error.kind.value,
        "message": message,
    }
    if error.retry_after is not None:
        payload["retry_after"] = error.retry_after
    if debug and error.detail:
        payload["detail"] = error.detail
    return payload


def log_error(error: ShortenerError, exc: Optional[BaseException] = None) -> None:
    """Log a classified error at a level matching its kind."""
    if error.kind is ErrorKind.INTERNAL:
        logger.error(f"{error.message}: {error.detail}", exc_info=exc)
    elif error.kind is ErrorKind.SERVICE_UNAVAILABLE:
        logger.error(f"{error.message}: {error.detail}")
    else:
        logger.info(f"{error.kind.value}: {error.message}")
