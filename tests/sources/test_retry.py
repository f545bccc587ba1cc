"""Tests for transient-failure classification and backoff."""

from __future__ import annotations

import asyncio
import errno
from unittest.mock import AsyncMock

import httpx
import pytest

from pyxscan.exceptions import TransientError, UpstreamError
from pyxscan.sources.retry import (
    RetryPolicy,
    backoff_delay,
    is_transient_error,
    with_retry,
)


class TestClassification:
    """is_transient_error."""

    @pytest.mark.parametrize(
        "exc",
        [
            TransientError("boom"),
            UpstreamError("limited", status_code=429),
            UpstreamError("down", status_code=503),
            httpx.ConnectError("refused"),
            ConnectionResetError(),
            OSError(errno.ENETUNREACH, "Network is unreachable"),
            RuntimeError("socket hang up"),
            RuntimeError("read ECONNRESET"),
        ],
    )
    def test_transient(self, exc: BaseException) -> None:
        """Network failures, 429 and 5xx are transient."""
        assert is_transient_error(exc)

    @pytest.mark.parametrize(
        "exc",
        [
            UpstreamError("missing", status_code=404),
            UpstreamError("bad json"),
            ValueError("invalid literal"),
            KeyError("sha"),
        ],
    )
    def test_not_transient(self, exc: BaseException) -> None:
        """Client errors and programming errors are not retried."""
        assert not is_transient_error(exc)


class TestBackoff:
    """Delay computation."""

    def test_exponential_with_jitter(self) -> None:
        """Delays double per attempt and jitter scales by 0.5 to 1.0."""
        policy = RetryPolicy(attempts=5, base_delay=1.0, max_delay=10.0)
        assert backoff_delay(1, policy, 0.0) == 0.5
        assert backoff_delay(1, policy, 1.0) == 1.0
        assert backoff_delay(3, policy, 1.0) == 4.0

    def test_capped(self) -> None:
        """No delay exceeds max_delay."""
        policy = RetryPolicy(attempts=10, base_delay=1.0, max_delay=10.0)
        assert backoff_delay(8, policy, 0.999) <= 10.0


class TestWithRetry:
    """with_retry control flow."""

    def test_succeeds_after_transient_failures(self) -> None:
        """Two transient failures then success means three calls."""
        fn = AsyncMock(side_effect=[TransientError("a"), TransientError("b"), "ok"])
        sleep = AsyncMock()
        result = asyncio.run(with_retry(fn, sleep=sleep, rand=lambda: 1.0))
        assert result == "ok"
        assert fn.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    def test_non_transient_not_retried(self) -> None:
        """A non-transient error is raised after one call."""
        fn = AsyncMock(side_effect=UpstreamError("gone", status_code=404))
        sleep = AsyncMock()
        with pytest.raises(UpstreamError):
            asyncio.run(with_retry(fn, sleep=sleep))
        assert fn.await_count == 1
        sleep.assert_not_awaited()

    def test_exhausted(self) -> None:
        """The last transient error is raised once attempts run out."""
        fn = AsyncMock(side_effect=TransientError("still down"))
        with pytest.raises(TransientError, match="still down"):
            asyncio.run(with_retry(fn, policy=RetryPolicy(attempts=2), sleep=AsyncMock()))
        assert fn.await_count == 2
