"""Tests for the queue consumer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pyxscan.exceptions import SourceFetchError
from pyxscan.pipeline.report import ScanReport, SkillOutcome, SkillStatus
from pyxscan.queue.consumer import JobResult, QueueConsumer, clawhub_target, github_target
from pyxscan.queue.models import JobStatus
from pyxscan.queue.session import create_db_engine, create_session_factory, init_db
from pyxscan.queue.store import JobStore, QueuedJob

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeGitHubScanner:
    """Scripted per-repository reports; unknown repositories submit one skill."""

    def __init__(self, reports: dict[str, ScanReport] | None = None, errors: dict[str, Exception] | None = None) -> None:
        self.reports = reports or {}
        self.errors = errors or {}
        self.calls: list[str] = []

    async def scan(self, owner: str, repo: str) -> ScanReport:
        target = f"{owner}/{repo}"
        self.calls.append(target)
        if target in self.errors:
            raise self.errors[target]
        default = ScanReport(target=target, outcomes=[SkillOutcome(repo, SkillStatus.SUBMITTED)])
        return self.reports.get(target, default)


class FakeClawHubScanner:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def process(self, slug: str) -> ScanReport:
        self.calls.append(slug)
        return ScanReport(target=slug, outcomes=[SkillOutcome(slug, SkillStatus.SUBMITTED)])


@pytest.fixture
def store(tmp_path: Path) -> JobStore:
    engine = create_db_engine(f"sqlite:///{tmp_path}/queue.db")
    init_db(engine)
    return JobStore(create_session_factory(engine))


def _consumer(store: JobStore, github: FakeGitHubScanner, clawhub: FakeClawHubScanner | None = None, **kwargs: object) -> QueueConsumer:
    return QueueConsumer(store, github, clawhub or FakeClawHubScanner(), model="sonnet", clock=lambda: T0, **kwargs)


def _job(**overrides: object) -> QueuedJob:
    fields: dict[str, object] = dict(
        id="j" * 32, skill_id="s" * 32, source=None, created_at=T0, owner="acme",
        name="pdf", repo=None, skill_source="github", clawhub_slug=None,
    )
    fields.update(overrides)
    return QueuedJob(**fields)  # type: ignore[arg-type]


class TestTargets:
    def test_github_target(self) -> None:
        """The stored repo wins over the skill identity."""
        assert github_target(_job(repo="acme/monorepo")) == ("acme", "monorepo")
        assert github_target(_job()) == ("acme", "pdf")

    def test_clawhub_target(self) -> None:
        """The slug wins over owner/name."""
        assert clawhub_target(_job(clawhub_slug="pdf-tools")) == "pdf-tools"
        assert clawhub_target(_job()) == "acme/pdf"


class TestDrain:
    """Drain cycles against a real store."""

    def test_dispatch_and_complete(self, store: JobStore) -> None:
        """Jobs run oldest first and route by source."""
        gh_job = store.enqueue("acme", "tools", repo="acme/tools", created_at=T0)
        ch_job = store.enqueue("alice", "pdf", source="clawhub", clawhub_slug="pdf", created_at=T0 + timedelta(seconds=1))
        github, clawhub = FakeGitHubScanner(), FakeClawHubScanner()
        report = asyncio.run(_consumer(store, github, clawhub).drain(10))

        assert [o.result for o in report.outcomes] == [JobResult.COMPLETED, JobResult.COMPLETED]
        assert github.calls == ["acme/tools"]
        assert clawhub.calls == ["pdf"]
        assert store.get_job(gh_job).status == JobStatus.COMPLETED.value
        assert store.get_job(ch_job).status == JobStatus.COMPLETED.value

    def test_failure_recorded_and_drain_continues(self, store: JobStore) -> None:
        """An exception fails its job only."""
        bad = store.enqueue("acme", "gone", created_at=T0)
        good = store.enqueue("acme", "tools", created_at=T0 + timedelta(seconds=1))
        github = FakeGitHubScanner(errors={"acme/gone": SourceFetchError("No commits found for acme/gone")})
        report = asyncio.run(_consumer(store, github).drain(10))

        assert report.count(JobResult.FAILED) == 1
        assert report.count(JobResult.COMPLETED) == 1
        job = store.get_job(bad)
        assert job.status == JobStatus.FAILED.value
        assert "No commits" in job.error_message
        assert store.get_job(good).status == JobStatus.COMPLETED.value

    def test_partial_skill_failure_fails_job(self, store: JobStore) -> None:
        """A repository with any failed skill fails the job after all skills ran."""
        job_id = store.enqueue("acme", "tools")
        partial = ScanReport(target="acme/tools", outcomes=[
            SkillOutcome("a", SkillStatus.SUBMITTED),
            SkillOutcome("b", SkillStatus.FAILED, error="timeout"),
        ])
        report = asyncio.run(_consumer(store, FakeGitHubScanner({"acme/tools": partial})).drain(10))

        assert report.outcomes[0].result is JobResult.FAILED
        assert "b (timeout)" in store.get_job(job_id).error_message

    def test_noop_scan_is_skipped(self, store: JobStore) -> None:
        """A scan that analyzed nothing completes as skipped."""
        job_id = store.enqueue("acme", "docs")
        noop = ScanReport(target="acme/docs", skipped_reason="documentation-only")
        report = asyncio.run(_consumer(store, FakeGitHubScanner({"acme/docs": noop})).drain(10))

        assert report.outcomes[0].result is JobResult.SKIPPED
        assert store.get_job(job_id).status == JobStatus.COMPLETED.value

    def test_duplicate_skill_in_one_drain(self, store: JobStore) -> None:
        """A second job for the same skill completes without scanning again."""
        first = store.enqueue("acme", "tools", created_at=T0)
        second = store.enqueue("acme", "tools", created_at=T0 + timedelta(seconds=1))
        github = FakeGitHubScanner()
        report = asyncio.run(_consumer(store, github).drain(10))

        assert github.calls == ["acme/tools"]
        assert [o.result for o in report.outcomes] == [JobResult.COMPLETED, JobResult.SKIPPED]
        assert store.get_job(first).status == JobStatus.COMPLETED.value
        assert store.get_job(second).status == JobStatus.COMPLETED.value

    def test_dry_run_leaves_status(self, store: JobStore) -> None:
        """Dry runs scan but never change job status."""
        job_id = store.enqueue("acme", "tools")
        github = FakeGitHubScanner()
        asyncio.run(_consumer(store, github, dry_run=True).drain(10))

        assert github.calls == ["acme/tools"]
        assert store.get_job(job_id).status == JobStatus.QUEUED.value

    def test_claimed_elsewhere(self, store: JobStore) -> None:
        """A job claimed by another consumer is not processed."""
        store.enqueue("acme", "tools")
        [job] = store.fetch_queued_jobs(1)
        assert store.claim(job.id, "opus")
        github = FakeGitHubScanner()
        outcome = asyncio.run(_consumer(store, github).process_job(job))

        assert outcome.result is JobResult.NOT_CLAIMED
        assert github.calls == []

    def test_stale_jobs_reset_first(self, store: JobStore) -> None:
        """Stale running jobs are reset and drained in the same cycle."""
        job_id = store.enqueue("acme", "tools")
        store.claim(job_id, "sonnet", T0 - timedelta(hours=2))
        report = asyncio.run(_consumer(store, FakeGitHubScanner()).drain(10))

        assert report.reset == 1
        assert report.outcomes[0].result is JobResult.COMPLETED

    def test_empty_queue(self, store: JobStore) -> None:
        report = asyncio.run(_consumer(store, FakeGitHubScanner()).drain(10))
        assert report.processed == 0
