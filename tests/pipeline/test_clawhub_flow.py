"""Tests for the ClawHub package scan flow."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest

from pyxscan.core.analysis.models import ScanOutput
from pyxscan.core.cache import CachedFile, CodeCache
from pyxscan.core.deps.models import DepScanResult
from pyxscan.exceptions import SourceFetchError
from pyxscan.pipeline.clawhub_flow import ClawHubSkillScanner
from pyxscan.pipeline.prescan import PreScanner
from pyxscan.pipeline.report import SkillStatus
from pyxscan.pipeline.sink import ResultSink
from pyxscan.sources.clawhub import (
    ClawHubOwner,
    ClawHubSkillDetail,
    ClawHubSkillSummary,
    Moderation,
)


def _detail(slug: str) -> ClawHubSkillDetail:
    return ClawHubSkillDetail(
        slug=slug, name=slug, description=f"{slug} skill", downloads=10, stars=1,
        latest_version="1.0.0", updated_at="", owner=ClawHubOwner(handle="alice"),
        moderation=Moderation(is_suspicious=True),
    )


class FakeClawHub:
    """In-memory registry; slugs starting with 'broken' cannot be fetched."""

    def __init__(self, slugs: list[str]) -> None:
        self.slugs = slugs
        self.max_totals: list[int | None] = []
        self.queries: list[str] = []

    async def get_skill(self, slug: str) -> ClawHubSkillDetail:
        if slug.startswith("broken"):
            raise SourceFetchError(f"ClawHub /skills/{slug} returned 404")
        return _detail(slug)

    async def fetch_skill_code(self, detail: ClawHubSkillDetail, max_bytes: int = 0) -> CodeCache:
        return CodeCache([CachedFile("SKILL.md", f"# {detail.slug}\n"), CachedFile("index.js", "run();\n")])

    async def list_all_skills(
        self, sort: str = "trending", batch_size: int = 50, max_total: int | None = None,
    ) -> AsyncIterator[tuple[ClawHubSkillSummary, ...]]:
        self.max_totals.append(max_total)
        slugs = self.slugs[:max_total] if max_total else self.slugs
        for start in range(0, len(slugs), batch_size):
            yield tuple(
                ClawHubSkillSummary(slug=s, name=s, description="", downloads=0, stars=0, latest_version="1.0.0", updated_at="")
                for s in slugs[start:start + batch_size]
            )

    async def search_skills(self, query: str) -> list[ClawHubSkillSummary]:
        self.queries.append(query)
        return [
            ClawHubSkillSummary(slug=s, name=s, description="", downloads=0, stars=0, latest_version="1.0.0", updated_at="")
            for s in self.slugs if query in s
        ]


class FakeAnalyzer:
    model = "haiku"

    def __init__(self, output: ScanOutput) -> None:
        self.output = output
        self.names: list[str] = []

    async def analyze_repository(self, owner: str, name: str, cache: CodeCache, ctx: str | None = None) -> ScanOutput:
        self.names.append(name)
        return self.output


class FakeOsv:
    async def scan(self, files: Any) -> DepScanResult:
        return DepScanResult()


class RecordingSink(ResultSink):
    def __init__(self, existing: set[tuple[str, str, str]] | None = None) -> None:
        self.existing = existing or set()
        self.payloads: list[dict[str, Any]] = []

    async def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.payloads.append(payload)
        return {}

    async def exists(self, owner: str, name: str, ref: str) -> bool:
        return (owner, name, ref) in self.existing


@pytest.fixture
def analyzer(make_scan: Any) -> FakeAnalyzer:
    return FakeAnalyzer(ScanOutput.from_dict(make_scan()))


def _scanner(slugs: list[str], analyzer: FakeAnalyzer, sink: RecordingSink) -> tuple[ClawHubSkillScanner, FakeClawHub]:
    registry = FakeClawHub(slugs)
    return ClawHubSkillScanner(registry, analyzer, PreScanner(FakeOsv()), sink), registry


class TestProcess:
    """Single-package processing."""

    def test_submits_registry_payload(self, analyzer: FakeAnalyzer) -> None:
        """The payload identifies the package and carries external scans."""
        sink = RecordingSink()
        scanner, _ = _scanner([], analyzer, sink)
        report = asyncio.run(scanner.process("web-search"))

        assert [o.status for o in report.outcomes] == [SkillStatus.SUBMITTED]
        payload = sink.payloads[0]
        assert payload["source"] == "clawhub"
        assert payload["owner"] == "alice"
        assert payload["commit_hash"] == "1.0.0"
        assert payload["model"] == "haiku"
        providers = payload["details"]["external_scans"]["providers"]
        assert providers[0]["status"] == "suspicious"

    def test_dedup_by_version(self, analyzer: FakeAnalyzer) -> None:
        """A package already stored at its latest version is skipped."""
        sink = RecordingSink({("alice", "web-search", "1.0.0")})
        scanner, _ = _scanner([], analyzer, sink)
        report = asyncio.run(scanner.process("web-search"))

        assert report.is_noop
        assert analyzer.names == []
        assert sink.payloads == []

    def test_errors_propagate(self, analyzer: FakeAnalyzer) -> None:
        """process() does not swallow fetch failures."""
        scanner, _ = _scanner([], analyzer, RecordingSink())
        with pytest.raises(SourceFetchError):
            asyncio.run(scanner.process("broken-one"))


class TestBatches:
    """Slug lists and registry imports."""

    def test_scan_slugs_isolates_failures(self, analyzer: FakeAnalyzer) -> None:
        """A failing slug is recorded and the rest still run."""
        scanner, _ = _scanner([], analyzer, RecordingSink())
        report = asyncio.run(scanner.scan_slugs(["a", "broken-b", "c"]))

        assert [(o.name, o.status) for o in report.outcomes] == [
            ("a", SkillStatus.SUBMITTED),
            ("broken-b", SkillStatus.FAILED),
            ("c", SkillStatus.SUBMITTED),
        ]
        assert "404" in report.failed[0].error

    def test_import_skip_and_limit(self, analyzer: FakeAnalyzer) -> None:
        """The first skip entries are passed over and at most limit are scanned."""
        scanner, registry = _scanner(["s1", "s2", "s3", "s4", "s5"], analyzer, RecordingSink())
        report = asyncio.run(scanner.import_skills(sort="stars", limit=2, skip=1, batch_size=2))

        assert report.target == "clawhub:stars"
        assert analyzer.names == ["s2", "s3"]
        assert registry.max_totals == [3]

    def test_scan_search_caps_hits(self, analyzer: FakeAnalyzer) -> None:
        """Search hits are scanned in order up to the limit."""
        scanner, registry = _scanner(["weather", "notes", "weather-pro", "weather-lite"], analyzer, RecordingSink())
        report = asyncio.run(scanner.scan_search("weather", limit=2))

        assert registry.queries == ["weather"]
        assert report.target == "clawhub:search:weather"
        assert analyzer.names == ["weather", "weather-pro"]
        assert [o.status for o in report.outcomes] == [SkillStatus.SUBMITTED, SkillStatus.SUBMITTED]
