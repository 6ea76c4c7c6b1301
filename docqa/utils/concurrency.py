"""Shared concurrency primitives for the ingestion and answer pipelines.

Two patterns are exposed:

1. **KeyedLock** -- one ``asyncio.Lock`` per key (a document id).  Ingestion
   with an explicit id and document deletion both hold the lock for that
   id, so at most one write is in flight per document.  Entries are dropped
   as soon as nobody holds or awaits them.

2. **call_with_retry** -- wraps every external call (embedding, vector
   store, LLM) in a per-attempt timeout plus a bounded tenacity retry.
   Only transient errors (:class:`ProviderUnavailableError`,
   :class:`RateLimitError`) are retried; a timeout is converted into
   ``ProviderUnavailableError`` first.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docqa.utils.errors import ProviderUnavailableError, RateLimitError
from docqa.utils.logging import get_logger

_T = TypeVar("_T")

_TRANSIENT_ERRORS: tuple[type[Exception], ...] = (ProviderUnavailableError, RateLimitError)

_logger: structlog.BoundLogger = get_logger(__name__)


class KeyedLock:
    """Per-key mutual exclusion for asyncio tasks.

    Usage::

        async with locks.hold(document_id):
            ...

    Not thread-safe; all holders must run on the same event loop.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        # Counted before awaiting so a concurrent release never drops a
        # lock that another task is about to wait on.
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def locked(self, key: str) -> bool:
        """Return ``True`` if *key* is currently held."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


def _log_before_retry(operation_name: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        _logger.warning(
            "external_call_retry",
            operation=operation_name,
            attempt=retry_state.attempt_number,
            error=str(exc),
        )

    return _before_sleep


async def call_with_retry(
    operation: Callable[[], Awaitable[_T]],
    *,
    operation_name: str,
    timeout: float,
    attempts: int = 3,
    backoff: float = 0.5,
    provider_name: str | None = None,
) -> _T:
    """Await ``operation()`` with a timeout per attempt and bounded retries.

    Parameters
    ----------
    operation:
        Zero-argument factory returning a fresh awaitable per attempt.
    operation_name:
        Short label used in logs and timeout messages.
    timeout:
        Seconds allowed for a single attempt.
    attempts:
        Maximum number of attempts (at least 1).
    backoff:
        Base delay in seconds for exponential backoff between attempts.
    provider_name:
        Attached to the ``ProviderUnavailableError`` raised on timeout.

    Returns
    -------
    _T
        Whatever the operation returns.

    Raises
    ------
    ProviderUnavailableError
        If the final attempt timed out or the provider was unreachable.
    RateLimitError
        If the final attempt was throttled.
    Exception
        Any non-transient error raised by the operation, unchanged and
        without retrying.
    """

    async def _attempt() -> _T:
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailableError(
                message=f"{operation_name} timed out after {timeout}s",
                provider_name=provider_name,
            ) from exc

    async for attempt in AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=backoff, min=backoff, max=max(backoff * 16, backoff)),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        before_sleep=_log_before_retry(operation_name),
    ):
        with attempt:
            return await _attempt()

    # reraise=True means the loop above always returns or raises.
    raise ProviderUnavailableError(
        message=f"{operation_name} retries exhausted",
        provider_name=provider_name,
    )
