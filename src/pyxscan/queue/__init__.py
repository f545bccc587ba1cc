"""Persistent scan job queue and its consumer."""

from pyxscan.queue.consumer import DrainReport, JobOutcome, JobResult, QueueConsumer
from pyxscan.queue.models import JobStatus
from pyxscan.queue.store import JobStore, QueuedJob

__all__ = [
    "DrainReport",
    "JobOutcome",
    "JobResult",
    "JobStatus",
    "JobStore",
    "QueueConsumer",
    "QueuedJob",
]
