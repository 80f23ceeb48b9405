"""Bounded retry for read-only store operations."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from app.config import get_settings
from app.core.exceptions import StoreUnavailable

settings = get_settings()
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean the store could not be reached, not that the query was wrong
TRANSIENT_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


async def retry_read(
    operation: Callable[[], Awaitable[T]],
    description: str,
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
    on_retry: Optional[Callable[[], Awaitable[None]]] = None,
) -> T:
    """
    Run a read operation, retrying transient store failures.

    Only use this for reads: a retried write could be applied twice.

    Args:
        operation: Zero-argument coroutine factory performing the read
        description: Human-readable name used in logs and the final error
        attempts: Total attempts (defaults to READ_RETRY_ATTEMPTS)
        backoff: Initial delay in seconds, doubled after each failure
        on_retry: Coroutine run before each retry (e.g. session rollback)

    Raises:
        StoreUnavailable: If every attempt failed
    """
    attempts = attempts or settings.READ_RETRY_ATTEMPTS
    delay = settings.READ_RETRY_BACKOFF_SECONDS if backoff is None else backoff

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except TRANSIENT_ERRORS as e:
            if attempt == attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                raise StoreUnavailable(f"{description} failed: store unavailable") from e
            logger.warning(
                f"{description} failed (attempt {attempt}/{attempts}), retrying in {delay}s: {e}"
            )
            if on_retry is not None:
                await on_retry()
            await asyncio.sleep(delay)
            delay *= 2

    # attempts < 1
    raise StoreUnavailable(f"{description} was not attempted")
