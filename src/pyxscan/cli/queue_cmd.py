"""``pyxscan queue`` -- manage and drain the scan job queue.

Usage::

    pyxscan queue init-db
    pyxscan queue enqueue acme/agent-skills
    pyxscan queue enqueue acme/weather --source clawhub --slug weather
    pyxscan queue drain --limit 10 --dry-run
"""

from __future__ import annotations

from datetime import timedelta

import click

from pyxscan.cli.common import dry_run_option, force_option, model_option, parse_owner_name, run_async
from pyxscan.cli.output import console, print_drain_report
from pyxscan.config import Settings, get_settings
from pyxscan.exceptions import PyxScanError
from pyxscan.pipeline.services import build_services
from pyxscan.queue.consumer import DrainReport, QueueConsumer
from pyxscan.queue.session import create_db_engine, create_session_factory, init_db
from pyxscan.queue.store import JobStore

SOURCES = ("github", "clawhub")


def open_store(settings: Settings) -> JobStore:
    """Connect to the configured database, creating tables when missing."""
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    return JobStore(create_session_factory(engine), error_message_limit=settings.error_message_limit)


async def _drain(
    settings: Settings,
    store: JobStore,
    limit: int,
    model: str | None,
    dry_run: bool,
    force: bool,
) -> DrainReport:
    async with build_services(settings, model=model, dry_run=dry_run, force=force) as services:
        consumer = QueueConsumer(
            store,
            services.github,
            services.clawhub,
            model=services.model,
            dry_run=dry_run,
            stale_after=timedelta(minutes=settings.stale_job_minutes),
        )
        return await consumer.drain(limit)


@click.group("queue")
def queue_group() -> None:
    """Scan job queue commands."""


@queue_group.command("init-db")
def init_db_command() -> None:
    """Create the job store tables."""
    settings = get_settings()
    open_store(settings)
    console.print("[green]Job store initialized.[/green]")


@queue_group.command("enqueue")
@click.argument("target")
@click.option("--source", type=click.Choice(SOURCES), default="github", show_default=True)
@click.option("--repo", default=None, help="Repository as OWNER/REPO when it differs from the skill.")
@click.option("--slug", default=None, help="ClawHub slug for registry skills.")
def enqueue_command(target: str, source: str, repo: str | None, slug: str | None) -> None:
    """Queue a scan of the skill OWNER/NAME."""
    owner, name = parse_owner_name(target)
    if repo is not None:
        parse_owner_name(repo)
    elif source == "github":
        repo = f"{owner}/{name}"
    try:
        job_id = open_store(get_settings()).enqueue(owner, name, source=source, repo=repo, clawhub_slug=slug)
    except PyxScanError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(job_id)


@queue_group.command("drain")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Max jobs to process (default: PYX_QUEUE_BATCH_LIMIT).")
@model_option
@dry_run_option
@force_option
def drain_command(limit: int | None, model: str | None, dry_run: bool, force: bool) -> None:
    """Process queued jobs, oldest first.

    Stale running jobs are returned to the queue before anything is
    claimed. In dry-run mode jobs keep their status.
    """
    settings = get_settings()
    store = open_store(settings)
    try:
        report = run_async(_drain(settings, store, limit or settings.queue_batch_limit, model, dry_run, force))
    except PyxScanError as exc:
        raise click.ClickException(str(exc)) from exc
    print_drain_report(report)
