"""Retry with exponential backoff for transient network failures.

An error is transient when it is a recognized network-level failure
(connection reset or refused, timeout, unreachable network, socket
hang-up), an explicit ``TransientError``, or an HTTP status of 429 or
5xx. Everything else is rethrown immediately.

Delays grow as ``base * 2**(attempt - 1)``, capped at ``max_delay``,
then scaled by a random factor in [0.5, 1.0].

Usage::

    data = await with_retry(lambda: client.get_json("/repos/a/b"), label="GitHub a/b")
"""

from __future__ import annotations

import asyncio
import errno
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from pyxscan.exceptions import TransientError, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message fragments that identify network-level failures.
TRANSIENT_SIGNATURES: tuple[str, ...] = (
    "fetch failed",
    "ECONNRESET",
    "ECONNREFUSED",
    "ETIMEDOUT",
    "ENETUNREACH",
    "UND_ERR_CONNECT_TIMEOUT",
    "socket hang up",
)

_TRANSIENT_ERRNOS: frozenset[int] = frozenset({
    errno.ECONNRESET,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
})


@dataclass(frozen=True)
class RetryPolicy:
    """Retry limits for one call site.

    Attributes:
        attempts: Total number of calls, including the first.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound on any single delay, in seconds.
    """

    attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0


DEFAULT_RETRY_POLICY = RetryPolicy()


def is_transient_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


def is_transient_error(exc: BaseException) -> bool:
    """Return True when *exc* is worth retrying."""
    if isinstance(exc, TransientError):
        return True
    if isinstance(exc, UpstreamError):
        return exc.status_code is not None and is_transient_status(exc.status_code)
    if isinstance(exc, httpx.HTTPStatusError):
        return is_transient_status(exc.response.status_code)
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True
    if isinstance(exc, OSError) and exc.errno in _TRANSIENT_ERRNOS:
        return True
    message = str(exc)
    return any(signature in message for signature in TRANSIENT_SIGNATURES)


def backoff_delay(attempt: int, policy: RetryPolicy, rand: float) -> float:
    """Delay in seconds before retry number *attempt* (1-based).

    Args:
        attempt: The attempt that just failed.
        policy: Retry limits.
        rand: A value in [0, 1) used for jitter.
    """
    capped = min(policy.base_delay * 2 ** (attempt - 1), policy.max_delay)
    return capped * (0.5 + rand * 0.5)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    label: str = "request",
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Call *fn* until it succeeds, retrying transient failures.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt.
        policy: Attempt count and delay bounds.
        label: Name used in retry log lines.
        sleep: Awaitable sleep, replaceable in tests.
        rand: Jitter source returning values in [0, 1).

    Returns:
        Whatever *fn* returns on the first successful attempt.

    Raises:
        Exception: The last error, when it is non-transient or the final
            attempt failed.
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= policy.attempts or not is_transient_error(exc):
                raise
            delay = backoff_delay(attempt, policy, rand())
            logger.warning(
                "Retry %d/%d for %s in %dms: %s",
                attempt, policy.attempts - 1, label, round(delay * 1000), exc,
            )
            await sleep(delay)
            attempt += 1
