"""GitHub repository scan flow.

Steps for one repository:

1. Resolve the latest commit and (best-effort) repository metadata.
2. List the tree; stop early for documentation-only repositories.
3. Discover skills by directory convention. If that finds any, download
   only their files; otherwise download the repository (capped) and ask
   the analysis engine to enumerate skills. No valid skills means the
   whole repository is analyzed as one skill named after it.
4. Run the dependency lookup once, then per skill: dedup check, static
   rules, scoped analysis, submission.

A failing skill never stops its siblings. Its failure is recorded in the
returned ``ScanReport``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pyxscan.core.analysis.models import ScanOutput
from pyxscan.core.analysis.orchestrator import SkillAnalyzer
from pyxscan.core.cache import CodeCache
from pyxscan.core.deps.models import DepScanResult
from pyxscan.core.discovery.heuristics import detect_skills, enrich_descriptions, restrict_to_cache
from pyxscan.core.discovery.tree import is_documentation_only
from pyxscan.pipeline.payload import build_github_payload
from pyxscan.pipeline.prescan import PreScanner
from pyxscan.pipeline.report import ScanReport, SkillOutcome, SkillStatus
from pyxscan.pipeline.sink import DedupIndex, ResultSink
from pyxscan.sources.github import MAX_CODE_BYTES, MAX_FILE_BYTES, GitHubClient, RepoMetadata

logger = logging.getLogger(__name__)

DOCUMENTATION_ONLY = "documentation-only"


class GitHubRepoScanner:
    """Scans every skill of a GitHub repository at its latest commit."""

    def __init__(
        self,
        github: GitHubClient,
        analyzer: SkillAnalyzer,
        prescanner: PreScanner,
        sink: ResultSink,
        *,
        dedup: DedupIndex | None = None,
        force: bool = False,
        max_code_bytes: int = MAX_CODE_BYTES,
        max_file_bytes: int = MAX_FILE_BYTES,
    ) -> None:
        self._github = github
        self._analyzer = analyzer
        self._prescanner = prescanner
        self._sink = sink
        self._dedup = dedup or DedupIndex(sink)
        self._force = force
        self._max_code_bytes = max_code_bytes
        self._max_file_bytes = max_file_bytes

    async def scan(self, owner: str, repo: str) -> ScanReport:
        """Scan ``owner/repo``.

        Raises:
            SourceFetchError: If the repository cannot be listed or fetched.
            AnalysisError: If AI skill discovery fails.
        """
        target = f"{owner}/{repo}"
        commit, metadata = await asyncio.gather(
            self._github.latest_commit(owner, repo),
            self._github.repo_metadata(owner, repo),
        )
        logger.info("Scanning %s at %s", target, commit[:7])
        report = ScanReport(target=target, ref=commit)

        tree = await self._github.tree(owner, repo, commit)
        paths = tree.blob_paths
        if is_documentation_only(paths):
            logger.info("%s is documentation-only; nothing to scan", target)
            report.skipped_reason = DOCUMENTATION_ONLY
            return report

        skills = detect_skills(paths, repo_name=repo)
        if skills:
            logger.info("Found %d skill(s) by directory convention", len(skills))
            wanted = sorted({p for skill in skills for p in skill.relevant_files})
            cache = await self._github.fetch_code(owner, repo, tree, scoped_paths=wanted)
            skills = enrich_descriptions(restrict_to_cache(skills, cache), cache)
        else:
            cache = await self._github.fetch_code(
                owner, repo, tree,
                max_total_bytes=self._max_code_bytes,
                max_file_bytes=self._max_file_bytes,
            )
            skills = await self._analyzer.discover_skills(owner, repo, cache)
            logger.info("AI discovery found %d skill(s)", len(skills))

        repo_deps = await self._prescanner.scan_dependencies(cache)

        if not skills:
            logger.info("No skills discovered; analyzing %s as a single skill", target)
            report.add(await self._process(
                owner, repo, commit, repo, cache, repo_deps, metadata,
                lambda ctx: self._analyzer.analyze_repository(owner, repo, cache, ctx),
            ))
            return report

        for skill in skills:
            partition = cache.subset(skill.relevant_files)
            report.add(await self._process(
                owner, repo, commit, skill.name, partition, repo_deps, metadata,
                lambda ctx, s=skill: self._analyzer.analyze_skill(owner, repo, s, cache, ctx),
            ))

        if report.failed:
            logger.warning(report.failure_message())
        return report

    async def _process(
        self,
        owner: str,
        repo: str,
        commit: str,
        skill_name: str,
        partition: CodeCache,
        repo_deps: DepScanResult,
        metadata: RepoMetadata | None,
        analyze: Callable[[str], Awaitable[ScanOutput]],
    ) -> SkillOutcome:
        try:
            if not self._force and await self._dedup.already_scanned(owner, skill_name, commit):
                logger.info("Skipping %s: already scanned at %s", skill_name, commit[:7])
                return SkillOutcome(skill_name, SkillStatus.SKIPPED)

            bundle = self._prescanner.for_partition(partition, repo_deps)
            output = await analyze(bundle.context)
            logger.info(
                "%s: %s (risk %.1f, %s)",
                skill_name, output.trust_status.value, output.risk_score, output.intent.value,
            )
            await self._sink.submit(build_github_payload(
                owner=owner,
                skill_name=skill_name,
                repo=f"{owner}/{repo}",
                commit=commit,
                output=output,
                model=self._analyzer.model,
                bundle=bundle,
                metadata=metadata,
            ))
            self._dedup.record(owner, skill_name, commit)
            return SkillOutcome(skill_name, SkillStatus.SUBMITTED, output=output)
        except Exception as exc:
            logger.warning("Skill %s of %s/%s failed: %s", skill_name, owner, repo, exc, exc_info=True)
            return SkillOutcome(skill_name, SkillStatus.FAILED, error=str(exc))
