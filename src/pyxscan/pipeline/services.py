"""Wiring of clients, engine and sink for one CLI run or queue drain."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass

from rich.console import Console

from pyxscan.config import Settings
from pyxscan.core.analysis.engine import ClaudeCliEngine
from pyxscan.core.analysis.orchestrator import SkillAnalyzer
from pyxscan.core.deps.osv import OsvScanner
from pyxscan.exceptions import ConfigError
from pyxscan.pipeline.clawhub_flow import ClawHubSkillScanner
from pyxscan.pipeline.github_flow import GitHubRepoScanner
from pyxscan.pipeline.prescan import PreScanner
from pyxscan.pipeline.sink import ApiResultSink, DedupIndex, DryRunSink, ResultSink
from pyxscan.sources.clawhub import ClawHubClient
from pyxscan.sources.github import GitHubClient
from pyxscan.sources.http_client import HttpClient
from pyxscan.sources.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a scan flow needs, sharing one sink and dedup index."""

    model: str
    sink: ResultSink
    github: GitHubRepoScanner
    clawhub: ClawHubSkillScanner


@asynccontextmanager
async def build_services(
    settings: Settings,
    *,
    model: str | None = None,
    dry_run: bool = False,
    force: bool = False,
    with_flags: bool = False,
    console: Console | None = None,
) -> AsyncIterator[Services]:
    """Build the scan services and close every client on exit.

    Raises:
        ConfigError: If results must be submitted but no admin key is set,
            or the scanner API cannot be reached.
    """
    model = model or settings.model
    retry = RetryPolicy(settings.retry_attempts, settings.retry_base_delay, settings.retry_max_delay)

    async with AsyncExitStack() as stack:
        if dry_run:
            sink: ResultSink = DryRunSink(console)
        else:
            if not settings.admin_api_key:
                raise ConfigError("PYX_ADMIN_API_KEY is required unless --dry-run is given")
            api_sink = ApiResultSink.create(
                settings.api_url,
                settings.admin_api_key,
                timeout=settings.http_timeout_seconds,
                retry=retry,
            )
            stack.push_async_callback(api_sink.aclose)
            await api_sink.ping()
            sink = api_sink

        github = GitHubClient.create(settings.github_token, timeout=settings.http_timeout_seconds, retry=retry)
        stack.push_async_callback(github.aclose)
        clawhub = ClawHubClient.create(
            min_interval=settings.clawhub_min_interval_seconds,
            timeout=settings.http_timeout_seconds,
            retry=retry,
        )
        stack.push_async_callback(clawhub.aclose)
        osv_http = HttpClient(timeout=settings.prescan_timeout_seconds, retry=retry)
        stack.push_async_callback(osv_http.aclose)

        if not settings.github_token:
            logger.warning("No GitHub token set; API rate limits will be low")

        analyzer = SkillAnalyzer(
            ClaudeCliEngine(settings.claude_binary, timeout=settings.analysis_timeout_seconds),
            model=model,
            max_skill_code_bytes=settings.max_skill_code_bytes,
        )
        prescanner = PreScanner(
            OsvScanner(osv_http, timeout=settings.prescan_timeout_seconds),
            with_flags=with_flags,
        )
        dedup = DedupIndex(sink)

        yield Services(
            model=model,
            sink=sink,
            github=GitHubRepoScanner(
                github, analyzer, prescanner, sink,
                dedup=dedup,
                force=force,
                max_code_bytes=settings.max_code_bytes,
                max_file_bytes=settings.max_file_bytes,
            ),
            clawhub=ClawHubSkillScanner(clawhub, analyzer, prescanner, sink, dedup=dedup, force=force),
        )
