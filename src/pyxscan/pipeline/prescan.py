"""Deterministic pre-scan: static rules, dependency advisories, flags.

The dependency lookup is the only networked step, so it runs once per
repository; each skill partition then gets its own static findings and
the advisories of the packages its own manifests declare.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pyxscan.core.analysis.prompts import build_pre_scan_context
from pyxscan.core.cache import CodeCache
from pyxscan.core.deps.extract import extract_dependencies
from pyxscan.core.deps.models import DepScanResult
from pyxscan.core.deps.osv import OsvScanner
from pyxscan.core.rules.engine import run_static_rules
from pyxscan.core.rules.flags import PreScanFlags, run_pre_scan_flags
from pyxscan.core.rules.models import StaticRulesResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreScanBundle:
    """Deterministic evidence for one skill or package."""

    static: StaticRulesResult
    deps: DepScanResult
    flags: PreScanFlags | None = None

    @property
    def context(self) -> str:
        """Prompt section describing the findings."""
        return build_pre_scan_context(self.static, self.deps)


class PreScanner:
    """Runs the deterministic passes over cached code."""

    def __init__(self, osv: OsvScanner, *, with_flags: bool = False) -> None:
        self._osv = osv
        self._with_flags = with_flags

    async def scan_dependencies(self, cache: CodeCache) -> DepScanResult:
        result = await self._osv.scan(cache.files)
        if result.error:
            logger.warning("Dependency scan warning: %s", result.error)
        else:
            logger.info(
                "Dependency scan: %d vulnerabilities in %d packages",
                len(result.vulnerabilities), result.scanned_packages,
            )
        return result

    def for_partition(self, partition: CodeCache, repo_deps: DepScanResult) -> PreScanBundle:
        """Build the bundle for one skill from repository-level advisories."""
        static = run_static_rules(partition.files)
        declared = {(d.name, d.version) for d in extract_dependencies(partition.files)}
        deps = repo_deps.restricted_to(declared)
        flags = run_pre_scan_flags(partition.files) if self._with_flags else None
        s = static.summary
        logger.info("Static rules: %d critical, %d warning, %d info", s.critical, s.warning, s.info)
        return PreScanBundle(static=static, deps=deps, flags=flags)

    async def run(self, cache: CodeCache) -> PreScanBundle:
        """Scan *cache* as a single partition."""
        return self.for_partition(cache, await self.scan_dependencies(cache))
