"""ClawHub registry-package scan flow.

A ClawHub package is one skill. Its latest version plays the role of the
commit for de-duplication. Registry verdicts (VirusTotal, OpenClaw) are
attached to the submitted details as ``external_scans``.
"""

from __future__ import annotations

import logging

from pyxscan.core.analysis.orchestrator import SkillAnalyzer
from pyxscan.pipeline.payload import build_clawhub_payload, build_external_scans
from pyxscan.pipeline.prescan import PreScanner
from pyxscan.pipeline.report import ScanReport, SkillOutcome, SkillStatus
from pyxscan.pipeline.sink import DedupIndex, ResultSink
from pyxscan.sources.clawhub import MAX_PACKAGE_BYTES, ClawHubClient

logger = logging.getLogger(__name__)


class ClawHubSkillScanner:
    """Scans ClawHub packages by slug."""

    def __init__(
        self,
        clawhub: ClawHubClient,
        analyzer: SkillAnalyzer,
        prescanner: PreScanner,
        sink: ResultSink,
        *,
        dedup: DedupIndex | None = None,
        force: bool = False,
        max_package_bytes: int = MAX_PACKAGE_BYTES,
    ) -> None:
        self._clawhub = clawhub
        self._analyzer = analyzer
        self._prescanner = prescanner
        self._sink = sink
        self._dedup = dedup or DedupIndex(sink)
        self._force = force
        self._max_package_bytes = max_package_bytes

    async def process(self, slug: str) -> ScanReport:
        """Scan one package; errors propagate to the caller."""
        detail = await self._clawhub.get_skill(slug)
        owner, name, version = detail.owner.handle, detail.name, detail.latest_version
        report = ScanReport(target=slug, ref=version)
        logger.info("Processing %s/%s (%s) version %s", owner, name, slug, version)

        if not self._force and await self._dedup.already_scanned(owner, name, version):
            logger.info("Skipping %s: already scanned at version %s", slug, version)
            report.add(SkillOutcome(name, SkillStatus.SKIPPED))
            return report

        cache = await self._clawhub.fetch_skill_code(detail, self._max_package_bytes)
        bundle = await self._prescanner.run(cache)
        output = await self._analyzer.analyze_repository(owner, name, cache, bundle.context)
        await self._sink.submit(build_clawhub_payload(
            detail=detail,
            output=output,
            model=self._analyzer.model,
            bundle=bundle,
            external_scans=build_external_scans(detail),
        ))
        self._dedup.record(owner, name, version)
        report.add(SkillOutcome(name, SkillStatus.SUBMITTED, output=output))
        return report

    async def import_skills(
        self,
        sort: str = "trending",
        limit: int = 50,
        skip: int = 0,
        batch_size: int = 50,
    ) -> ScanReport:
        """Scan up to *limit* listed packages after skipping the first *skip*.

        Each package is isolated: a failure is recorded and the import
        moves on to the next one.
        """
        report = ScanReport(target=f"clawhub:{sort}")
        seen = 0
        async for page in self._clawhub.list_all_skills(sort, batch_size, max_total=skip + limit):
            for summary in page:
                seen += 1
                if seen <= skip:
                    continue
                await self._process_isolated(summary.slug, report)
        self._log_totals(report)
        return report

    async def scan_slugs(self, slugs: list[str]) -> ScanReport:
        """Scan specific packages, isolating failures per slug."""
        report = ScanReport(target="clawhub")
        for slug in slugs:
            await self._process_isolated(slug, report)
        self._log_totals(report)
        return report

    async def scan_search(self, query: str, limit: int = 50) -> ScanReport:
        """Scan up to *limit* packages matching a registry search."""
        results = await self._clawhub.search_skills(query)
        logger.info("ClawHub search %r: %d matches", query, len(results))
        report = ScanReport(target=f"clawhub:search:{query}")
        for summary in results[:limit]:
            await self._process_isolated(summary.slug, report)
        self._log_totals(report)
        return report

    async def _process_isolated(self, slug: str, report: ScanReport) -> None:
        try:
            result = await self.process(slug)
        except Exception as exc:
            logger.warning("ClawHub skill %s failed: %s", slug, exc, exc_info=True)
            report.add(SkillOutcome(slug, SkillStatus.FAILED, error=str(exc)))
            return
        report.outcomes.extend(result.outcomes)

    @staticmethod
    def _log_totals(report: ScanReport) -> None:
        logger.info(
            "ClawHub scan finished: %d submitted, %d skipped, %d failed",
            len(report.submitted), len(report.skipped), len(report.failed),
        )
