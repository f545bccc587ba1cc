"""Persistent scan job store.

Every status change is a conditional update: the row only moves when
its current status matches the expected one, and the caller learns
whether it did. Two consumers draining the same table therefore never
both run a job.

Usage::

    store = JobStore(create_session_factory(engine))
    store.enqueue("acme", "tools", repo="acme/tools")
    for job in store.fetch_queued_jobs(limit=10):
        if store.claim(job.id, model="sonnet"):
            ...
            store.mark_completed(job.id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from pyxscan.exceptions import JobStoreError
from pyxscan.queue.models import JobStatus, ScanJobORM, SkillORM, utcnow

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE_LIMIT = 2000


@dataclass(frozen=True)
class QueuedJob:
    """A queued job joined with the identity of its skill."""

    id: str
    skill_id: str
    source: str | None
    created_at: datetime
    owner: str
    name: str
    repo: str | None
    skill_source: str
    clawhub_slug: str | None

    @property
    def effective_source(self) -> str:
        return self.source or self.skill_source

    @property
    def short_id(self) -> str:
        return self.id[:8]


class JobStore:
    """SQLAlchemy-backed repository for skills and scan jobs."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        error_message_limit: int = DEFAULT_ERROR_MESSAGE_LIMIT,
    ) -> None:
        self._session_factory = session_factory
        self._error_message_limit = error_message_limit

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def ensure_skill(
        self,
        owner: str,
        name: str,
        *,
        source: str = "github",
        repo: str | None = None,
        clawhub_slug: str | None = None,
    ) -> str:
        """Return the id of the skill, creating it when missing.

        Raises:
            JobStoreError: If owner or name is empty.
        """
        if not owner or not name:
            raise JobStoreError("skill owner and name are required")
        with self._session_factory.begin() as db:
            skill = db.execute(
                select(SkillORM).where(
                    SkillORM.owner == owner,
                    SkillORM.name == name,
                    SkillORM.source == source,
                )
            ).scalars().first()
            if skill is None:
                skill = SkillORM(owner=owner, name=name, source=source, repo=repo, clawhub_slug=clawhub_slug)
                db.add(skill)
                db.flush()
            else:
                if repo:
                    skill.repo = repo
                if clawhub_slug:
                    skill.clawhub_slug = clawhub_slug
            return skill.id

    def enqueue(
        self,
        owner: str,
        name: str,
        *,
        source: str = "github",
        repo: str | None = None,
        clawhub_slug: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Add a queued job for the skill and return the job id."""
        skill_id = self.ensure_skill(owner, name, source=source, repo=repo, clawhub_slug=clawhub_slug)
        with self._session_factory.begin() as db:
            job = ScanJobORM(
                skill_id=skill_id,
                source=source,
                status=JobStatus.QUEUED.value,
                created_at=created_at or utcnow(),
            )
            db.add(job)
            db.flush()
            logger.info("Queued job %s for %s/%s (%s)", job.id[:8], owner, name, source)
            return job.id

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def reset_stale_jobs(self, stale_after: timedelta, now: datetime | None = None) -> int:
        """Return running jobs started before ``now - stale_after`` to the queue."""
        cutoff = (now or utcnow()) - stale_after
        with self._session_factory.begin() as db:
            result = db.execute(
                update(ScanJobORM)
                .where(
                    ScanJobORM.status == JobStatus.RUNNING.value,
                    ScanJobORM.started_at < cutoff,
                )
                .values(status=JobStatus.QUEUED.value, started_at=None, error_message=None)
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount or 0
        if count:
            logger.info("Reset %d stale running job(s) back to queued", count)
        return count

    def fetch_queued_jobs(self, limit: int) -> list[QueuedJob]:
        """Oldest queued jobs first."""
        with self._session_factory() as db:
            rows = db.execute(
                select(ScanJobORM, SkillORM)
                .join(SkillORM, ScanJobORM.skill_id == SkillORM.id)
                .where(ScanJobORM.status == JobStatus.QUEUED.value)
                .order_by(ScanJobORM.created_at, ScanJobORM.id)
                .limit(limit)
            ).all()
        return [
            QueuedJob(
                id=job.id,
                skill_id=skill.id,
                source=job.source,
                created_at=job.created_at,
                owner=skill.owner,
                name=skill.name,
                repo=skill.repo,
                skill_source=skill.source,
                clawhub_slug=skill.clawhub_slug,
            )
            for job, skill in rows
        ]

    def _transition(self, job_id: str, expected: JobStatus, **values: Any) -> bool:
        with self._session_factory.begin() as db:
            result = db.execute(
                update(ScanJobORM)
                .where(ScanJobORM.id == job_id, ScanJobORM.status == expected.value)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def claim(self, job_id: str, model: str, now: datetime | None = None) -> bool:
        """Move a queued job to running. False means someone else has it."""
        return self._transition(
            job_id,
            JobStatus.QUEUED,
            status=JobStatus.RUNNING.value,
            started_at=now or utcnow(),
            model=model,
        )

    def mark_completed(self, job_id: str, now: datetime | None = None) -> bool:
        changed = self._transition(
            job_id,
            JobStatus.RUNNING,
            status=JobStatus.COMPLETED.value,
            completed_at=now or utcnow(),
        )
        if not changed:
            logger.warning("Job %s was not running; completion not recorded", job_id[:8])
        return changed

    def mark_failed(self, job_id: str, message: str, now: datetime | None = None) -> bool:
        changed = self._transition(
            job_id,
            JobStatus.RUNNING,
            status=JobStatus.FAILED.value,
            completed_at=now or utcnow(),
            error_message=message[: self._error_message_limit],
        )
        if not changed:
            logger.warning("Job %s was not running; failure not recorded", job_id[:8])
        return changed

    def get_job(self, job_id: str) -> ScanJobORM | None:
        with self._session_factory() as db:
            return db.get(ScanJobORM, job_id)
