"""``pyxscan prescan`` -- deterministic checks over a local directory.

Runs the static rules, the secondary pattern flags and the npm
dependency advisory lookup without any AI analysis.

Usage::

    pyxscan prescan ./my-skill
    pyxscan prescan ./my-skill --format json --offline
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from pyxscan.cli.common import run_async
from pyxscan.cli.output import console, print_dep_scan, print_static_result
from pyxscan.config import get_settings
from pyxscan.core.cache import CodeCache
from pyxscan.core.deps.models import DepScanResult
from pyxscan.core.deps.osv import run_dep_scan
from pyxscan.core.rules.engine import run_static_rules
from pyxscan.core.rules.flags import run_pre_scan_flags


@click.command("prescan")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.option("--offline", is_flag=True, help="Skip the dependency advisory lookup.")
def prescan_command(path: Path, output_format: str, offline: bool) -> None:
    """Run static rules and the dependency scan over PATH.

    Exits with status 1 when any critical finding exists.
    """
    settings = get_settings()
    cache = CodeCache.from_directory(path, max_file_bytes=settings.max_file_bytes)
    static = run_static_rules(cache.files)
    flags = run_pre_scan_flags(cache.files)
    if offline:
        deps = DepScanResult()
    else:
        deps = run_async(run_dep_scan(cache.files, timeout=settings.prescan_timeout_seconds))

    if output_format == "json":
        output = {
            "path": str(path),
            "files_scanned": cache.file_count,
            "static": static.to_dict(),
            "pre_scan_flags": flags.to_list(),
            "dependencies": deps.to_dict(),
        }
        click.echo(json.dumps(output, indent=2))
    else:
        console.print(f"[bold]{cache.file_count}[/bold] file(s) scanned in {path}")
        print_static_result(static)
        if flags.flags:
            console.print(f"[dim]{len(flags.flags)} secondary pattern flag(s)[/dim]")
        print_dep_scan(deps)

    sys.exit(1 if static.has_critical else 0)
