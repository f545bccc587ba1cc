"""``pyxscan scan`` -- scan a GitHub repository.

Usage::

    pyxscan scan acme/agent-skills
    pyxscan scan acme/agent-skills --model opus --force
"""

from __future__ import annotations

import sys

import click

from pyxscan.cli.common import dry_run_option, force_option, model_option, parse_owner_name, run_async
from pyxscan.cli.output import print_scan_report
from pyxscan.config import Settings, get_settings
from pyxscan.exceptions import PyxScanError
from pyxscan.pipeline.report import ScanReport
from pyxscan.pipeline.services import build_services


async def _scan(settings: Settings, owner: str, repo: str, model: str | None, dry_run: bool, force: bool) -> ScanReport:
    async with build_services(settings, model=model, dry_run=dry_run, force=force) as services:
        return await services.github.scan(owner, repo)


@click.command("scan")
@click.argument("target")
@model_option
@dry_run_option
@force_option
def scan_command(target: str, model: str | None, dry_run: bool, force: bool) -> None:
    """Scan every skill of the GitHub repository OWNER/REPO.

    Exits with status 1 when any skill failed.
    """
    owner, repo = parse_owner_name(target)
    try:
        report = run_async(_scan(get_settings(), owner, repo, model, dry_run, force))
    except PyxScanError as exc:
        raise click.ClickException(str(exc)) from exc

    print_scan_report(report)
    sys.exit(1 if report.failed else 0)
