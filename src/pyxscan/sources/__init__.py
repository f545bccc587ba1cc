"""Upstream providers: HTTP client, retry, GitHub and ClawHub."""

from pyxscan.sources.http_client import HttpClient
from pyxscan.sources.retry import RetryPolicy, is_transient_error, is_transient_status, with_retry

__all__ = [
    "HttpClient",
    "RetryPolicy",
    "is_transient_error",
    "is_transient_status",
    "with_retry",
]
