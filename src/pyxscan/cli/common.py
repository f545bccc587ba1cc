"""Shared helpers for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import click

from pyxscan.config import MODEL_CHOICES

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a synchronous context."""
    return asyncio.run(coro)


def parse_owner_name(value: str) -> tuple[str, str]:
    """Split ``OWNER/NAME``.

    Raises:
        click.BadParameter: If either part is missing.
    """
    owner, sep, name = value.strip().strip("/").partition("/")
    if not sep or not owner or not name or "/" in name:
        raise click.BadParameter(f"expected OWNER/NAME, got {value!r}")
    return owner, name


model_option = click.option(
    "--model",
    type=click.Choice(MODEL_CHOICES),
    default=None,
    help="Analysis model (default: PYX_MODEL or sonnet).",
)
dry_run_option = click.option(
    "--dry-run",
    is_flag=True,
    help="Print payloads instead of submitting them.",
)
force_option = click.option(
    "--force",
    is_flag=True,
    help="Re-scan even if already scanned at this commit or version.",
)
