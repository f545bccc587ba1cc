"""Tests for the OSV dependency vulnerability scanner."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from unittest.mock import AsyncMock

import httpx

from pyxscan.core.cache import CachedFile
from pyxscan.core.deps.models import DepScanResult, VulnSeverity
from pyxscan.core.deps.osv import (
    OsvScanner,
    advisory_severity,
    cvss_score,
    lowest_fixed_version,
    run_dep_scan,
)
from pyxscan.sources.http_client import HttpClient

_MANIFEST = CachedFile("package.json", json.dumps({"dependencies": {"express": "^4.17.1"}}))

CRITICAL_VECTOR = "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H"

_ADVISORY = {
    "id": "GHSA-test-0001",
    "summary": "Open redirect in express",
    "severity": [{"type": "CVSS_V3", "score": CRITICAL_VECTOR}],
    "database_specific": {"severity": "CRITICAL"},
    "affected": [
        {
            "package": {"name": "express", "ecosystem": "npm"},
            "ranges": [
                {"type": "SEMVER", "events": [{"introduced": "4.0.0"}, {"fixed": "4.19.2"}]},
                {"type": "SEMVER", "events": [{"introduced": "4.0.0"}, {"fixed": "4.17.3"}]},
            ],
        }
    ],
    "references": [{"type": "ADVISORY", "url": "https://github.com/advisories/GHSA-test-0001"}],
}


def _scan(
    handler: Callable[[httpx.Request], httpx.Response],
    files: tuple[CachedFile, ...] = (_MANIFEST,),
) -> DepScanResult:
    async def _run() -> DepScanResult:
        async with HttpClient(transport=httpx.MockTransport(handler), sleep=AsyncMock()) as client:
            return await OsvScanner(client).scan(files)

    return asyncio.run(_run())


class TestAdvisoryMapping:
    """Pure helpers for OSV advisory records."""

    def test_cvss_score_from_vector(self) -> None:
        """Base scores are computed from CVSS v3 and v2 vectors."""
        assert cvss_score([{"type": "CVSS_V3", "score": CRITICAL_VECTOR}]) == 9.8
        assert cvss_score([{"type": "CVSS_V2", "score": "AV:N/AC:L/Au:N/C:P/I:P/A:P"}]) == 7.5
        assert cvss_score([{"type": "CVSS_V3", "score": "7.5"}]) == 7.5

    def test_cvss_score_unusable(self) -> None:
        """Malformed vectors and other score types yield no score."""
        assert cvss_score([{"type": "CVSS_V3", "score": "CVSS:3.1/AV:N"}]) is None
        assert cvss_score([{"type": "CVSS_V4", "score": "CVSS:4.0/AV:N"}]) is None
        assert cvss_score(None) is None

    def test_advisory_severity_vector_only(self) -> None:
        """An advisory carrying only a vector is graded by its base score."""
        vuln = {"id": "GHSA-v", "severity": [{"type": "CVSS_V3", "score": CRITICAL_VECTOR}]}
        assert advisory_severity(vuln) is VulnSeverity.CRITICAL

    def test_advisory_severity_database_label(self) -> None:
        """Without a usable vector the database label is used."""
        assert advisory_severity({"id": "x", "database_specific": {"severity": "HIGH"}}) is VulnSeverity.HIGH
        assert advisory_severity({"id": "x", "database_specific": {"severity": "MEDIUM"}}) is VulnSeverity.MODERATE
        assert advisory_severity({"id": "x", "database_specific": {"severity": "unknown"}}) is VulnSeverity.MODERATE
        assert advisory_severity({"id": "x"}) is VulnSeverity.MODERATE

    def test_severity_from_score(self) -> None:
        """Score bands map to severities; no score is MODERATE."""
        assert VulnSeverity.from_score(9.0) is VulnSeverity.CRITICAL
        assert VulnSeverity.from_score(7.0) is VulnSeverity.HIGH
        assert VulnSeverity.from_score(4.0) is VulnSeverity.MODERATE
        assert VulnSeverity.from_score(3.9) is VulnSeverity.LOW
        assert VulnSeverity.from_score(None) is VulnSeverity.MODERATE

    def test_lowest_fixed_version(self) -> None:
        """The numerically lowest fixed event wins."""
        assert lowest_fixed_version(_ADVISORY["affected"], "express") == "4.17.3"
        assert lowest_fixed_version([], "express") is None


class TestOsvScanner:
    """Batch query, hydration and degradation."""

    def test_vulnerable_dependency(self) -> None:
        """A vulnerable express version is reported with hydrated details."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(f"{request.method} {request.url.path}")
            if request.url.path == "/v1/querybatch":
                body = json.loads(request.content)
                assert body["queries"] == [
                    {"version": "4.17.1", "package": {"name": "express", "ecosystem": "npm"}}
                ]
                return httpx.Response(200, json={"results": [{"vulns": [{"id": "GHSA-test-0001"}]}]})
            return httpx.Response(200, json=_ADVISORY)

        result = _scan(handler)
        assert result.error is None
        assert result.scanned_packages == 1
        (vuln,) = result.vulnerabilities
        assert vuln.package_name == "express"
        assert vuln.installed_version == "4.17.1"
        assert vuln.severity is VulnSeverity.CRITICAL
        assert vuln.fixed_version == "4.17.3"
        assert vuln.reference_url == "https://github.com/advisories/GHSA-test-0001"
        assert seen == ["POST /v1/querybatch", "GET /v1/vulns/GHSA-test-0001"]

    def test_hydration_failure_keeps_batch_record(self) -> None:
        """When details cannot be fetched the advisory is still reported."""
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/querybatch":
                return httpx.Response(200, json={"results": [{"vulns": [{"id": "GHSA-x"}]}]})
            return httpx.Response(404, json={"message": "not found"})

        (vuln,) = _scan(handler).vulnerabilities
        assert vuln.severity is VulnSeverity.MODERATE
        assert vuln.summary == "Vulnerability GHSA-x in express"
        assert vuln.fixed_version is None
        assert vuln.reference_url == "https://osv.dev/vulnerability/GHSA-x"

    def test_no_manifest_makes_no_request(self) -> None:
        """Without dependencies OSV is not queried."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        result = _scan(handler, files=(CachedFile("index.js", "1"),))
        assert result == DepScanResult()
        assert calls == []

    def test_error_status_degrades(self) -> None:
        """An error status yields an empty result with a reason."""
        result = _scan(lambda request: httpx.Response(503, text="down"))
        assert result.vulnerabilities == ()
        assert result.error == "OSV API returned 503"
        assert result.scanned_packages == 1

    def test_unreachable_degrades(self) -> None:
        """A connection failure yields an empty result with a reason."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = _scan(handler)
        assert result.error is not None
        assert result.error.startswith("OSV API unreachable")

    def test_invalid_json_degrades(self) -> None:
        """A non-JSON body yields an empty result with a reason."""
        result = _scan(lambda request: httpx.Response(200, text="<html>"))
        assert result.error == "OSV API returned invalid JSON"

    def test_run_dep_scan_with_shared_client(self) -> None:
        """run_dep_scan uses an injected client."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"results": [{}]})

        async def _run() -> DepScanResult:
            async with HttpClient(transport=httpx.MockTransport(handler), sleep=AsyncMock()) as client:
                return await run_dep_scan([_MANIFEST], client=client)

        result = asyncio.run(_run())
        assert result.vulnerabilities == ()
        assert result.error is None

    def test_vector_only_advisory_is_critical(self) -> None:
        """A hydrated advisory with only a CVSS vector keeps its real severity."""
        advisory = {k: v for k, v in _ADVISORY.items() if k != "database_specific"}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/querybatch":
                return httpx.Response(200, json={"results": [{"vulns": [{"id": "GHSA-test-0001"}]}]})
            return httpx.Response(200, json=advisory)

        (vuln,) = _scan(handler).vulnerabilities
        assert vuln.severity is VulnSeverity.CRITICAL

    def test_same_package_at_two_versions(self) -> None:
        """An advisory hitting two declared versions is kept once per version."""
        files = (
            CachedFile("skills/a/package.json", json.dumps({"dependencies": {"express": "4.17.1"}})),
            CachedFile("skills/b/package.json", json.dumps({"dependencies": {"express": "~4.16.0"}})),
        )

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/querybatch":
                hit = {"vulns": [{"id": "GHSA-test-0001"}]}
                return httpx.Response(200, json={"results": [hit, hit]})
            return httpx.Response(200, json=_ADVISORY)

        result = _scan(handler, files=files)
        assert sorted(v.installed_version for v in result.vulnerabilities) == ["4.16.0", "4.17.1"]
