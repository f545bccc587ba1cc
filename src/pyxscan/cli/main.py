"""pyxscan CLI: security scanning for AI agent skills.

Commands:
    scan     Scan every skill of a GitHub repository.
    clawhub  Scan ClawHub registry packages (by slug or listing).
    queue    Drain, fill or initialize the scan job queue.
    prescan  Run the deterministic checks over a local directory.

Usage::

    pyxscan scan acme/agent-skills --dry-run
    pyxscan clawhub --slug weather --slug acme/notes
    pyxscan clawhub --sort downloads --limit 20
    pyxscan queue enqueue acme/agent-skills
    pyxscan queue drain --limit 10
    pyxscan prescan ./my-skill --format json
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from pyxscan import __version__
from pyxscan.cli.clawhub_cmd import clawhub_command
from pyxscan.cli.prescan_cmd import prescan_command
from pyxscan.cli.queue_cmd import queue_group
from pyxscan.cli.scan_cmd import scan_command


def configure_logging(verbose: bool = False) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose, show_path=verbose)],
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="pyxscan")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """pyxscan: scan AI agent skills for security threats.

    Combines deterministic static rules and dependency advisories with
    an AI verdict per skill, and submits the results to the scanner API.
    """
    configure_logging(verbose)


cli.add_command(scan_command)
cli.add_command(clawhub_command)
cli.add_command(queue_group)
cli.add_command(prescan_command)
