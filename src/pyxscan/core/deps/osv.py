"""Dependency vulnerability lookup against the OSV database.

One batched query per scan (``POST /v1/querybatch``) resolves every
declared npm dependency at once. Batch responses often carry only
advisory ids, so advisories without details are hydrated from
``GET /v1/vulns/{id}`` on a best-effort basis.

This scanner never raises: any network or parse failure produces an
empty ``DepScanResult`` whose ``error`` explains why, so the analysis
can proceed without dependency data.

Usage::

    result = await run_dep_scan(cache.files)
    for vuln in result.vulnerabilities:
        print(vuln.id, vuln.severity.value, vuln.fixed_version)
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

from cvss import CVSS2, CVSS3
from cvss.exceptions import CVSSError

from pyxscan.core.cache import CachedFile
from pyxscan.core.deps.extract import extract_dependencies
from pyxscan.core.deps.models import DepScanResult, DepVulnerability, PackageDependency, VulnSeverity
from pyxscan.exceptions import PyxScanError, TransientError, UpstreamError
from pyxscan.sources.http_client import HttpClient

logger = logging.getLogger(__name__)

OSV_BATCH_URL = "https://api.osv.dev/v1/querybatch"
OSV_VULN_URL = "https://api.osv.dev/v1/vulns/{id}"
OSV_ADVISORY_PAGE = "https://osv.dev/vulnerability/{id}"
ECOSYSTEM = "npm"

# Timeout for OSV requests (seconds). The scan is best-effort and must
# not stall the pipeline.
DEFAULT_OSV_TIMEOUT: float = 10.0

# Concurrent advisory detail lookups.
_HYDRATE_CONCURRENCY = 5

_CVSS_TYPES: frozenset[str] = frozenset({"CVSS_V3", "CVSS_V2"})
_DETAIL_KEYS: tuple[str, ...] = ("summary", "details", "affected", "severity")

# GitHub advisory labels that differ from ours.
_SEVERITY_LABELS: dict[str, str] = {"MEDIUM": "MODERATE"}


# ---------------------------------------------------------------------------
# Advisory mapping
# ---------------------------------------------------------------------------


def _base_score(kind: str, score: str) -> float:
    try:
        return float(score)
    except ValueError:
        pass
    metric = CVSS3 if kind == "CVSS_V3" else CVSS2
    return float(metric(score).scores()[0])


def cvss_score(severity_entries: Any) -> float | None:
    """Return the CVSS base score of the first usable severity entry.

    OSV advisories carry vector strings such as
    ``CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H``; the base score is
    computed from the vector. Bare numeric scores are accepted as-is.
    """
    if not isinstance(severity_entries, list):
        return None
    for entry in severity_entries:
        if not isinstance(entry, dict) or entry.get("type") not in _CVSS_TYPES:
            continue
        score = entry.get("score")
        if not isinstance(score, str):
            continue
        try:
            return _base_score(entry["type"], score.strip())
        except CVSSError:
            logger.debug("Unparseable CVSS vector %r", score)
    return None


def advisory_severity(vuln: dict[str, Any]) -> VulnSeverity:
    """Severity from the CVSS vector, else the database label, else MODERATE."""
    score = cvss_score(vuln.get("severity"))
    if score is not None:
        return VulnSeverity.from_score(score)
    label = (vuln.get("database_specific") or {}).get("severity")
    if isinstance(label, str):
        try:
            return VulnSeverity(_SEVERITY_LABELS.get(label.upper(), label.upper()))
        except ValueError:
            pass
    return VulnSeverity.MODERATE


def _version_key(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", version))


def lowest_fixed_version(affected: Any, package_name: str | None = None) -> str | None:
    """Return the lowest ``fixed`` event across an advisory's ranges.

    Ranges of the named package are preferred; when none names it, all
    ranges are considered.
    """
    if not isinstance(affected, list):
        return None
    entries = [a for a in affected if isinstance(a, dict)]
    if package_name is not None:
        named = [a for a in entries if (a.get("package") or {}).get("name") == package_name]
        entries = named or entries

    fixed: list[str] = []
    for entry in entries:
        for rng in entry.get("ranges") or []:
            if not isinstance(rng, dict):
                continue
            for event in rng.get("events") or []:
                if isinstance(event, dict) and isinstance(event.get("fixed"), str):
                    fixed.append(event["fixed"])
    if not fixed:
        return None
    return min(fixed, key=_version_key)


def first_reference(vuln: dict[str, Any]) -> str:
    for ref in vuln.get("references") or []:
        if isinstance(ref, dict) and isinstance(ref.get("url"), str):
            return ref["url"]
    return OSV_ADVISORY_PAGE.format(id=vuln["id"])


def to_vulnerability(dep: PackageDependency, vuln: dict[str, Any]) -> DepVulnerability:
    vuln_id = vuln["id"]
    return DepVulnerability(
        id=vuln_id,
        package_name=dep.name,
        installed_version=dep.version,
        severity=advisory_severity(vuln),
        summary=vuln.get("summary") or f"Vulnerability {vuln_id} in {dep.name}",
        fixed_version=lowest_fixed_version(vuln.get("affected"), dep.name),
        reference_url=first_reference(vuln),
    )


def _needs_details(vuln: dict[str, Any]) -> bool:
    return not any(key in vuln for key in _DETAIL_KEYS)


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class OsvScanner:
    """Batch vulnerability lookup over an injected ``HttpClient``."""

    def __init__(
        self,
        client: HttpClient,
        *,
        timeout: float = DEFAULT_OSV_TIMEOUT,
        hydrate: bool = True,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._hydrate = hydrate

    async def scan(self, files: Iterable[CachedFile]) -> DepScanResult:
        """Extract dependencies from *files* and look them up in OSV."""
        deps = _unique(extract_dependencies(files))
        if not deps:
            return DepScanResult()
        return await self.query(deps)

    async def query(self, deps: list[PackageDependency]) -> DepScanResult:
        queries = [
            {"version": d.version, "package": {"name": d.name, "ecosystem": ECOSYSTEM}}
            for d in deps
        ]
        try:
            data = await self._client.post_json(
                OSV_BATCH_URL,
                {"queries": queries},
                retry=False,
                timeout=self._timeout,
                label="OSV querybatch",
            )
        except (TransientError, UpstreamError) as exc:
            error = _describe_failure(exc)
            logger.warning("Dependency scan degraded: %s", error)
            return DepScanResult(scanned_packages=len(deps), error=error)

        try:
            vulns = await self._collect(deps, data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Dependency scan degraded: %s", exc)
            return DepScanResult(scanned_packages=len(deps), error=f"Dep scan failed: {exc}")

        return DepScanResult(vulnerabilities=tuple(vulns), scanned_packages=len(deps))

    async def _collect(self, deps: list[PackageDependency], data: Any) -> list[DepVulnerability]:
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ValueError("unexpected OSV response shape")

        records: list[tuple[PackageDependency, dict[str, Any]]] = []
        for dep, result in zip(deps, results):
            for vuln in (result or {}).get("vulns") or []:
                if isinstance(vuln, dict) and vuln.get("id"):
                    records.append((dep, vuln))

        details: dict[str, dict[str, Any]] = {}
        if self._hydrate:
            missing = sorted({v["id"] for _, v in records if _needs_details(v)})
            details = await self._fetch_details(missing)

        seen: set[tuple[str, str, str]] = set()
        vulns: list[DepVulnerability] = []
        for dep, vuln in records:
            key = (vuln["id"], dep.name, dep.version)
            if key in seen:
                continue
            seen.add(key)
            vulns.append(to_vulnerability(dep, details.get(vuln["id"], vuln)))
        vulns.sort(key=lambda v: v.severity.rank)
        return vulns

    async def _fetch_details(self, ids: list[str]) -> dict[str, dict[str, Any]]:
        if not ids:
            return {}
        semaphore = asyncio.Semaphore(_HYDRATE_CONCURRENCY)

        async def _one(vuln_id: str) -> tuple[str, dict[str, Any] | None]:
            async with semaphore:
                try:
                    data = await self._client.get_json(
                        OSV_VULN_URL.format(id=quote(vuln_id, safe="")),
                        retry=False,
                        timeout=self._timeout,
                        label=f"OSV {vuln_id}",
                    )
                except PyxScanError:
                    logger.debug("No details for advisory %s", vuln_id, exc_info=True)
                    return vuln_id, None
            if isinstance(data, dict) and data.get("id"):
                return vuln_id, data
            return vuln_id, None

        pairs = await asyncio.gather(*(_one(i) for i in ids))
        return {vuln_id: data for vuln_id, data in pairs if data is not None}


def _unique(deps: list[PackageDependency]) -> list[PackageDependency]:
    seen: set[tuple[str, str]] = set()
    unique: list[PackageDependency] = []
    for dep in deps:
        key = (dep.name, dep.version)
        if key not in seen:
            seen.add(key)
            unique.append(dep)
    return unique


def _describe_failure(exc: TransientError | UpstreamError) -> str:
    status = exc.status_code
    if status is None:
        return f"OSV API unreachable: {exc}"
    if status < 400:
        return "OSV API returned invalid JSON"
    return f"OSV API returned {status}"


async def run_dep_scan(
    files: Iterable[CachedFile],
    *,
    client: HttpClient | None = None,
    timeout: float = DEFAULT_OSV_TIMEOUT,
) -> DepScanResult:
    """Scan *files* for vulnerable dependencies.

    Args:
        files: Cached files to read manifests from.
        client: Shared HTTP client; a short-lived one is created when None.
        timeout: Per-request timeout in seconds.

    Returns:
        The scan result; never raises for network or parse failures.
    """
    if client is not None:
        return await OsvScanner(client, timeout=timeout).scan(files)
    async with HttpClient(timeout=timeout) as owned:
        return await OsvScanner(owned, timeout=timeout).scan(files)
