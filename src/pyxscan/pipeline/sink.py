"""Result sinks and scan de-duplication.

A sink accepts finished scan payloads and answers whether a skill was
already scanned at a given commit or version:

- ``ApiResultSink`` posts to the scanner web API with an admin bearer
  key. Submissions are retried on transient failures; a 409 response
  means the (owner, name, commit) was already stored and is treated as
  a no-op. ``exists`` is best-effort and answers False when it cannot
  tell.
- ``DryRunSink`` prints payloads instead of sending them.

``DedupIndex`` remembers keys confirmed or submitted by this process so
repeated checks within one run do not hit the API again.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from rich.console import Console

from pyxscan.exceptions import ConfigError, PyxScanError, TransientError, UpstreamError
from pyxscan.sources.http_client import HttpClient

logger = logging.getLogger(__name__)

SCAN_RESULT_PATH = "/api/v1/scan-result"
EXISTS_PATH = "/api/v1/scan-result/exists"


class ResultSink(ABC):
    """Destination for finished scan results."""

    @abstractmethod
    async def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Store one scan payload and return the acknowledgement."""

    @abstractmethod
    async def exists(self, owner: str, name: str, ref: str) -> bool:
        """Return True if (owner, name, ref) was already scanned."""

    async def aclose(self) -> None:
        return None


class ApiResultSink(ResultSink):
    """Submits results to the scanner web API."""

    def __init__(self, http: HttpClient, admin_key: str | None) -> None:
        self._http = http
        self._admin_key = admin_key

    @classmethod
    def create(cls, api_url: str, admin_key: str | None, **http_options: Any) -> ApiResultSink:
        return cls(HttpClient(api_url.rstrip("/"), **http_options), admin_key)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth(self) -> dict[str, str]:
        if not self._admin_key:
            raise ConfigError("PYX_ADMIN_API_KEY is required to submit scan results")
        return {"Authorization": f"Bearer {self._admin_key}"}

    async def ping(self) -> None:
        """Check that the API host answers at all (any status counts).

        Raises:
            ConfigError: If the API cannot be reached.
        """
        try:
            await self._http.request("OPTIONS", SCAN_RESULT_PATH, retry=False, label="API ping")
        except (UpstreamError, TransientError) as exc:
            if exc.status_code is not None:
                return
            raise ConfigError(f"Cannot reach the scanner API: {exc}. Set PYX_API_URL.") from exc
        except PyxScanError as exc:
            raise ConfigError(f"Cannot reach the scanner API: {exc}. Set PYX_API_URL.") from exc

    async def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        label = f"submit {payload.get('owner')}/{payload.get('name')}"
        try:
            ack = await self._http.post_json(SCAN_RESULT_PATH, payload, headers=self._auth(), label=label)
        except UpstreamError as exc:
            if exc.status_code == 409:
                logger.info("%s: already stored, nothing to do", label)
                return {"duplicate": True}
            raise
        if isinstance(ack, dict) and ack.get("already_exists") is True:
            logger.info("%s: already stored, nothing to do", label)
            return {"duplicate": True, **ack}
        logger.info("%s: result stored", label)
        return ack if isinstance(ack, dict) else {"response": ack}

    async def exists(self, owner: str, name: str, ref: str) -> bool:
        if not self._admin_key:
            return False
        try:
            data = await self._http.get_json(
                EXISTS_PATH,
                params={"owner": owner, "name": name, "commit_hash": ref},
                headers=self._auth(),
                retry=False,
                label=f"exists {owner}/{name}",
            )
        except PyxScanError as exc:
            logger.debug("Dedup check failed for %s/%s: %s", owner, name, exc)
            return False
        return isinstance(data, dict) and data.get("exists") is True


class DryRunSink(ResultSink):
    """Prints payloads instead of submitting them."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.payloads: list[dict[str, Any]] = []

    async def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.payloads.append(payload)
        self.console.rule(f"[bold]DRY RUN[/bold] {payload.get('owner')}/{payload.get('name')}")
        self.console.print_json(data=payload)
        return {"dry_run": True}

    async def exists(self, owner: str, name: str, ref: str) -> bool:
        return False


class DedupIndex:
    """Process-local memory in front of ``ResultSink.exists``."""

    def __init__(self, sink: ResultSink) -> None:
        self._sink = sink
        self._known: set[tuple[str, str, str]] = set()

    async def already_scanned(self, owner: str, name: str, ref: str) -> bool:
        key = (owner, name, ref)
        if key in self._known:
            return True
        if await self._sink.exists(owner, name, ref):
            self._known.add(key)
            return True
        return False

    def record(self, owner: str, name: str, ref: str) -> None:
        self._known.add((owner, name, ref))
