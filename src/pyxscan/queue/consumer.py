"""Queue consumer: drains queued scan jobs in creation order.

Each drain cycle first returns stale running jobs to the queue, then
claims and processes the oldest queued jobs one at a time. A job that
raises is marked failed with a truncated message and the drain moves
on; a job whose skill was already handled in this cycle completes
without scanning again. In dry-run mode no job changes status.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from pyxscan.exceptions import ScanFailedError
from pyxscan.pipeline.clawhub_flow import ClawHubSkillScanner
from pyxscan.pipeline.github_flow import GitHubRepoScanner
from pyxscan.pipeline.report import ScanReport
from pyxscan.queue.models import utcnow
from pyxscan.queue.store import JobStore, QueuedJob

logger = logging.getLogger(__name__)

CLAWHUB_SOURCE = "clawhub"
DEFAULT_STALE_AFTER = timedelta(minutes=30)


class JobResult(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_CLAIMED = "not_claimed"


@dataclass
class JobOutcome:
    job_id: str
    target: str
    result: JobResult
    error: str | None = None


@dataclass
class DrainReport:
    """What one drain cycle did."""

    reset: int = 0
    outcomes: list[JobOutcome] = field(default_factory=list)

    def count(self, result: JobResult) -> int:
        return sum(1 for o in self.outcomes if o.result is result)

    @property
    def processed(self) -> int:
        return len(self.outcomes)


def github_target(job: QueuedJob) -> tuple[str, str]:
    """Repository coordinates for a GitHub job, defaulting to the skill identity."""
    if not job.repo:
        return job.owner, job.name
    owner, _, name = job.repo.partition("/")
    return owner or job.owner, name or job.name


def clawhub_target(job: QueuedJob) -> str:
    return job.clawhub_slug or f"{job.owner}/{job.name}"


class QueueConsumer:
    """Drains the job store through the GitHub and ClawHub scan flows."""

    def __init__(
        self,
        store: JobStore,
        github: GitHubRepoScanner,
        clawhub: ClawHubSkillScanner,
        *,
        model: str,
        dry_run: bool = False,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._github = github
        self._clawhub = clawhub
        self._model = model
        self._dry_run = dry_run
        self._stale_after = stale_after
        self._clock = clock
        self._handled: set[str] = set()

    async def drain(self, limit: int = 50) -> DrainReport:
        """Process up to *limit* queued jobs, oldest first."""
        report = DrainReport(reset=self._store.reset_stale_jobs(self._stale_after, self._clock()))
        self._handled = set()

        jobs = self._store.fetch_queued_jobs(limit)
        if not jobs:
            logger.info("No queued scan jobs found")
            return report

        logger.info("Found %d queued job(s) to process", len(jobs))
        for job in jobs:
            report.outcomes.append(await self.process_job(job))

        logger.info(
            "Queue drain complete: %d completed, %d skipped, %d failed",
            report.count(JobResult.COMPLETED),
            report.count(JobResult.SKIPPED),
            report.count(JobResult.FAILED),
        )
        return report

    async def process_job(self, job: QueuedJob) -> JobOutcome:
        """Claim, dispatch and settle one job. Never raises for scan errors."""
        target = self._describe(job)
        logger.info("Processing job %s: %s (%s)", job.short_id, target, job.effective_source)

        if not self._dry_run and not self._store.claim(job.id, self._model, self._clock()):
            logger.info("Job %s was claimed by another consumer", job.short_id)
            return JobOutcome(job.id, target, JobResult.NOT_CLAIMED)

        if job.skill_id in self._handled:
            logger.info("Job %s: %s already handled in this drain", job.short_id, target)
            self._settle_completed(job)
            return JobOutcome(job.id, target, JobResult.SKIPPED)
        self._handled.add(job.skill_id)

        try:
            scan = await self._dispatch(job)
            if scan.failed:
                raise ScanFailedError(scan.failure_message())
        except Exception as exc:
            logger.error("Job %s failed: %s", job.short_id, exc, exc_info=True)
            if not self._dry_run:
                self._store.mark_failed(job.id, str(exc), self._clock())
            return JobOutcome(job.id, target, JobResult.FAILED, error=str(exc))

        self._settle_completed(job)
        result = JobResult.SKIPPED if scan.is_noop else JobResult.COMPLETED
        logger.info("Job %s: %s", job.short_id, result.value)
        return JobOutcome(job.id, target, result)

    async def _dispatch(self, job: QueuedJob) -> ScanReport:
        if job.effective_source == CLAWHUB_SOURCE:
            return await self._clawhub.process(clawhub_target(job))
        owner, repo = github_target(job)
        return await self._github.scan(owner, repo)

    def _settle_completed(self, job: QueuedJob) -> None:
        if not self._dry_run:
            self._store.mark_completed(job.id, self._clock())

    @staticmethod
    def _describe(job: QueuedJob) -> str:
        if job.effective_source == CLAWHUB_SOURCE:
            return f"clawhub:{clawhub_target(job)}"
        owner, repo = github_target(job)
        return f"{owner}/{repo}"
