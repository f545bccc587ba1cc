"""``pyxscan clawhub`` -- scan ClawHub registry packages.

Usage::

    pyxscan clawhub --slug weather --slug acme/notes
    pyxscan clawhub --sort downloads --limit 20 --skip 40
    pyxscan clawhub --search weather --limit 5
"""

from __future__ import annotations

import sys

import click

from pyxscan.cli.common import dry_run_option, force_option, model_option, run_async
from pyxscan.cli.output import print_scan_report
from pyxscan.config import Settings, get_settings
from pyxscan.exceptions import PyxScanError
from pyxscan.pipeline.report import ScanReport
from pyxscan.pipeline.services import build_services
from pyxscan.sources.clawhub import SORT_OPTIONS


async def _run(
    settings: Settings,
    slugs: tuple[str, ...],
    search: str | None,
    sort: str,
    limit: int,
    skip: int,
    model: str | None,
    dry_run: bool,
    force: bool,
) -> ScanReport:
    async with build_services(settings, model=model, dry_run=dry_run, force=force) as services:
        if slugs:
            return await services.clawhub.scan_slugs(list(slugs))
        if search:
            return await services.clawhub.scan_search(search, limit=limit)
        return await services.clawhub.import_skills(sort=sort, limit=limit, skip=skip)


@click.command("clawhub")
@click.option("--slug", "slugs", multiple=True, help="Package slug to scan (repeatable).")
@click.option("--search", default=None, help="Scan packages matching this registry search.")
@click.option("--sort", type=click.Choice(SORT_OPTIONS), default="trending", show_default=True)
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True, help="Packages to import or search hits to scan.")
@click.option("--skip", type=click.IntRange(min=0), default=0, show_default=True, help="Listed packages to skip first.")
@model_option
@dry_run_option
@force_option
def clawhub_command(
    slugs: tuple[str, ...],
    search: str | None,
    sort: str,
    limit: int,
    skip: int,
    model: str | None,
    dry_run: bool,
    force: bool,
) -> None:
    """Scan ClawHub packages: the given slugs, search hits, or a listing page range.

    Exits with status 1 when any package failed.
    """
    try:
        report = run_async(_run(get_settings(), slugs, search, sort, limit, skip, model, dry_run, force))
    except PyxScanError as exc:
        raise click.ClickException(str(exc)) from exc

    print_scan_report(report)
    sys.exit(1 if report.failed else 0)
