"""Shared async HTTP client for upstream APIs.

Wraps ``httpx.AsyncClient`` with a standard user agent, timeouts and
error classification:

- network failures and 429/5xx responses raise ``TransientError`` and
  are retried through ``with_retry``;
- other 4xx responses raise ``UpstreamError`` with the status code;
- unparseable JSON raises ``UpstreamError``.

Every source client (GitHub, ClawHub, OSV, result sink) goes through
this module so that HTTP behaviour is consistent and testable: pass an
``httpx.MockTransport`` as ``transport`` in tests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from pyxscan.exceptions import TransientError, UpstreamError
from pyxscan.sources.retry import DEFAULT_RETRY_POLICY, RetryPolicy, is_transient_status, with_retry

logger = logging.getLogger(__name__)

# Timeout for upstream HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 8.0

# User-Agent sent with every request.
USER_AGENT: str = "pyx-scanner/1.0"

# Longest response body excerpt kept in error messages.
_BODY_EXCERPT = 300


class HttpClient:
    """Async JSON/text client bound to one upstream base URL."""

    def __init__(
        self,
        base_url: str = "",
        *,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry: RetryPolicy = DEFAULT_RETRY_POLICY,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._retry = retry
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        retry: bool = True,
        label: str | None = None,
    ) -> httpx.Response:
        """Send a request and classify failures.

        Args:
            method: HTTP method.
            url: Absolute URL or path relative to the base URL.
            params: Query parameters.
            json: JSON body.
            headers: Extra headers for this request.
            timeout: Per-request timeout override in seconds.
            retry: Retry transient failures with the client's policy.
            label: Name used in log lines and error messages.

        Returns:
            The successful (status < 400) response.

        Raises:
            TransientError: Network failure or 429/5xx after all attempts.
            UpstreamError: Any other error status.
        """
        name = label or f"{method} {url}"
        extra: dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = timeout

        async def _once() -> httpx.Response:
            try:
                resp = await self._client.request(
                    method, url, params=params, json=json, headers=headers, **extra
                )
            except httpx.TransportError as exc:
                raise TransientError(f"{name} failed: {exc!r}") from exc
            if resp.status_code >= 400:
                body = resp.text[:_BODY_EXCERPT]
                message = f"{name} returned {resp.status_code}: {body}"
                if is_transient_status(resp.status_code):
                    raise TransientError(message, status_code=resp.status_code)
                raise UpstreamError(message, status_code=resp.status_code)
            return resp

        if not retry:
            return await _once()
        return await with_retry(_once, policy=self._retry, label=name, sleep=self._sleep)

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        resp = await self.request("GET", url, **kwargs)
        return _decode_json(resp, kwargs.get("label") or url)

    async def post_json(self, url: str, body: Any, **kwargs: Any) -> Any:
        resp = await self.request("POST", url, json=body, **kwargs)
        return _decode_json(resp, kwargs.get("label") or url)

    async def get_text(self, url: str, **kwargs: Any) -> str:
        resp = await self.request("GET", url, **kwargs)
        return resp.text


def _decode_json(resp: httpx.Response, name: str) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise UpstreamError(f"{name} returned invalid JSON", status_code=resp.status_code) from exc
