"""ClawHub registry-package provider.

Wraps the public ClawHub API (``https://clawhub.ai/api/v1``): skill
listings with cursor pagination, search, skill detail, and per-file
downloads. Security scan data (VirusTotal and OpenClaw verdicts) comes
from ClawHub's Convex backend and is best-effort.

The API allows roughly 120 requests per minute. Each client owns a
``RateLimiter`` that spaces requests at least ``min_interval`` seconds
apart; separate clients do not share state.

Usage::

    async with HttpClient(CLAWHUB_API) as http:
        client = ClawHubClient(http)
        detail = await client.get_skill("web-search")
        cache = await client.fetch_skill_code(detail)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from pyxscan.core.cache import CachedFile, CodeCache, byte_length
from pyxscan.exceptions import PyxScanError, SourceFetchError
from pyxscan.sources.http_client import DEFAULT_TIMEOUT, HttpClient
from pyxscan.sources.retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

CLAWHUB_API = "https://clawhub.ai/api/v1"
CONVEX_QUERY_URL = "https://wry-manatee-359.convex.cloud/api/query"
CLAWHUB_SKILL_PAGE = "https://clawhub.ai/skills/{slug}"

SORT_OPTIONS: tuple[str, ...] = ("trending", "updated", "downloads", "stars")

# Files tried, in order, when assembling a package's code.
SKILL_FILE_CANDIDATES: tuple[str, ...] = (
    "SKILL.md",
    "index.ts", "index.js",
    "main.ts", "main.js",
    "index.py", "main.py",
    "package.json",
    "README.md",
)

MAX_PACKAGE_BYTES: int = 200 * 1024
SECURITY_TIMEOUT: float = 10.0
TRUNCATION_SUFFIX = "\n[... truncated]"


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class RateLimiter:
    """Enforces a minimum interval between consecutive requests."""

    def __init__(
        self,
        min_interval: float = 0.5,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last is not None:
                elapsed = self._clock() - self._last
                if elapsed < self.min_interval:
                    await self._sleep(self.min_interval - elapsed)
            self._last = self._clock()


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClawHubOwner:
    handle: str
    name: str = ""


@dataclass(frozen=True)
class Moderation:
    is_suspicious: bool = False
    is_malware_blocked: bool = False


@dataclass(frozen=True)
class SecurityData:
    """VirusTotal and OpenClaw verdicts for a package's latest version."""

    sha256hash: str | None = None
    vt_analysis: dict[str, Any] | None = None
    llm_analysis: dict[str, Any] | None = None


@dataclass(frozen=True)
class ClawHubSkillSummary:
    slug: str
    name: str
    description: str
    downloads: int
    stars: int
    latest_version: str
    updated_at: str


@dataclass(frozen=True)
class ClawHubSkillDetail(ClawHubSkillSummary):
    owner: ClawHubOwner = ClawHubOwner(handle="")
    moderation: Moderation | None = None
    security: SecurityData | None = None

    @property
    def url(self) -> str:
        return CLAWHUB_SKILL_PAGE.format(slug=self.slug)


@dataclass(frozen=True)
class ClawHubPage:
    skills: tuple[ClawHubSkillSummary, ...]
    total: int
    cursor: str | None


def _iso_from_millis(value: Any) -> str:
    if not isinstance(value, (int, float)):
        return ""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()


def _stats(raw: dict[str, Any]) -> tuple[int, int]:
    stats = raw.get("stats") or {}
    return int(stats.get("downloads") or 0), int(stats.get("stars") or 0)


def _summary_from_item(item: dict[str, Any]) -> ClawHubSkillSummary:
    downloads, stars = _stats(item)
    return ClawHubSkillSummary(
        slug=item["slug"],
        name=item["slug"],
        description=item.get("summary") or "",
        downloads=downloads,
        stars=stars,
        latest_version=(item.get("latestVersion") or {}).get("version", ""),
        updated_at=_iso_from_millis(item.get("updatedAt")),
    )


def _detail_from_raw(raw: dict[str, Any], security: SecurityData | None) -> ClawHubSkillDetail:
    skill = raw["skill"]
    owner = raw.get("owner") or {}
    moderation = raw.get("moderation")
    downloads, stars = _stats(skill)
    return ClawHubSkillDetail(
        slug=skill["slug"],
        name=skill["slug"],
        description=skill.get("summary") or "",
        downloads=downloads,
        stars=stars,
        latest_version=(raw.get("latestVersion") or {}).get("version", ""),
        updated_at=_iso_from_millis(skill.get("updatedAt")),
        owner=ClawHubOwner(handle=owner.get("handle", ""), name=owner.get("displayName", "")),
        moderation=Moderation(
            is_suspicious=bool(moderation.get("isSuspicious")),
            is_malware_blocked=bool(moderation.get("isMalwareBlocked")),
        ) if isinstance(moderation, dict) else None,
        security=security,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ClawHubClient:
    """Rate-limited async client for the ClawHub API."""

    def __init__(
        self,
        http: HttpClient,
        *,
        limiter: RateLimiter | None = None,
        security_timeout: float = SECURITY_TIMEOUT,
    ) -> None:
        self._http = http
        self._limiter = limiter or RateLimiter()
        self._security_timeout = security_timeout

    @classmethod
    def create(
        cls,
        *,
        min_interval: float = 0.5,
        timeout: float = DEFAULT_TIMEOUT,
        retry: RetryPolicy = DEFAULT_RETRY_POLICY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ClawHubClient:
        http = HttpClient(
            CLAWHUB_API,
            headers={"Accept": "application/json"},
            timeout=timeout,
            retry=retry,
            transport=transport,
        )
        return cls(http, limiter=RateLimiter(min_interval))

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        await self._limiter.wait()
        return await self._http.get_json(path, params=params, label=f"ClawHub {path}")

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_skills(self, sort: str = "trending", limit: int = 50, cursor: str | None = None) -> ClawHubPage:
        if sort not in SORT_OPTIONS:
            raise ValueError(f"sort must be one of {', '.join(SORT_OPTIONS)}")
        params = {"sort": sort, "limit": str(limit)}
        if cursor:
            params["cursor"] = cursor
        raw = await self._get_json("/skills", params)
        try:
            items = [_summary_from_item(i) for i in raw["items"]]
        except (KeyError, TypeError) as exc:
            raise SourceFetchError(f"Unexpected ClawHub listing: {exc}") from exc
        return ClawHubPage(skills=tuple(items), total=int(raw.get("total") or 0), cursor=raw.get("nextCursor"))

    async def list_all_skills(
        self,
        sort: str = "trending",
        batch_size: int = 50,
        max_total: int | None = None,
    ) -> AsyncIterator[tuple[ClawHubSkillSummary, ...]]:
        """Yield pages of skills until the cursor runs out or *max_total* is reached."""
        cursor: str | None = None
        fetched = 0
        while True:
            limit = min(batch_size, max_total - fetched) if max_total else batch_size
            if limit <= 0:
                return
            page = await self.list_skills(sort, limit, cursor)
            if not page.skills:
                return
            yield page.skills
            fetched += len(page.skills)
            if not page.cursor or (max_total and fetched >= max_total):
                return
            cursor = page.cursor

    async def search_skills(self, query: str) -> list[ClawHubSkillSummary]:
        raw = await self._get_json("/search", {"q": query})
        try:
            return [_summary_from_item(i) for i in raw["items"]]
        except (KeyError, TypeError) as exc:
            raise SourceFetchError(f"Unexpected ClawHub search response: {exc}") from exc

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    async def get_skill(self, slug: str) -> ClawHubSkillDetail:
        """Fetch a package's detail together with its security data."""
        raw, security = await asyncio.gather(
            self._get_json(f"/skills/{quote(slug, safe='')}"),
            self.fetch_security_data(slug),
        )
        try:
            return _detail_from_raw(raw, security)
        except (KeyError, TypeError, AttributeError) as exc:
            raise SourceFetchError(f"Unexpected ClawHub detail for {slug}: {exc}") from exc

    async def fetch_security_data(self, slug: str) -> SecurityData | None:
        """Query VirusTotal/OpenClaw verdicts; None on any failure."""
        try:
            data = await self._http.post_json(
                CONVEX_QUERY_URL,
                {"path": "skills:getBySlug", "args": {"slug": slug}},
                retry=False,
                timeout=self._security_timeout,
                label=f"ClawHub security {slug}",
            )
        except PyxScanError as exc:
            logger.debug("No security data for %s: %s", slug, exc)
            return None
        value = data.get("value") if isinstance(data, dict) else None
        version = value.get("latestVersion") if isinstance(value, dict) else None
        if not isinstance(version, dict):
            return None
        return SecurityData(
            sha256hash=version.get("sha256hash"),
            vt_analysis=version.get("vtAnalysis"),
            llm_analysis=version.get("llmAnalysis"),
        )

    async def get_skill_file(self, slug: str, path: str, version: str | None = None) -> str:
        await self._limiter.wait()
        params = {"path": path}
        if version:
            params["version"] = version
        return await self._http.get_text(
            f"/skills/{quote(slug, safe='')}/file",
            params=params,
            label=f"ClawHub file {slug}/{path}",
        )

    async def fetch_skill_code(self, detail: ClawHubSkillDetail, max_bytes: int = MAX_PACKAGE_BYTES) -> CodeCache:
        """Download the well-known files of a package into a ``CodeCache``.

        Missing files are skipped. The total is capped at *max_bytes*; the
        crossing file is cut and marked ``[... truncated]``.

        Raises:
            SourceFetchError: If no file could be downloaded.
        """
        files: list[CachedFile] = []
        total = 0
        for path in SKILL_FILE_CANDIDATES:
            try:
                content = await self.get_skill_file(detail.slug, path, detail.latest_version)
            except PyxScanError:
                logger.debug("%s has no %s", detail.slug, path)
                continue
            if not content.strip():
                continue
            size = byte_length(content)
            if total + size > max_bytes:
                remaining = max_bytes - total
                if remaining > 0:
                    head = content.encode("utf-8")[:remaining].decode("utf-8", errors="ignore")
                    files.append(CachedFile(path, head + TRUNCATION_SUFFIX))
                break
            files.append(CachedFile(path, content))
            total += size

        if not files:
            raise SourceFetchError(f"No files could be fetched for ClawHub skill {detail.slug}")
        logger.info("Fetched %d file(s) for %s (%d bytes)", len(files), detail.slug, total)
        return CodeCache(files)
