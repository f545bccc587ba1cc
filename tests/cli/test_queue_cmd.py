"""Tests for ``pyxscan queue``."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from pyxscan.cli.main import cli
from pyxscan.config import get_settings
from pyxscan.queue.session import create_db_engine, create_session_factory
from pyxscan.queue.store import JobStore


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite:///{tmp_path}/cli.db"
    monkeypatch.setenv("PYX_DATABASE_URL", url)
    get_settings.cache_clear()
    return url


def _store(url: str) -> JobStore:
    return JobStore(create_session_factory(create_db_engine(url)))


class TestQueueCommands:
    def test_init_db(self, db_url: str) -> None:
        """init-db creates the tables."""
        result = CliRunner().invoke(cli, ["queue", "init-db"])
        assert result.exit_code == 0, result.output
        assert "initialized" in result.output
        assert _store(db_url).fetch_queued_jobs(1) == []

    def test_enqueue_github(self, db_url: str) -> None:
        """GitHub jobs default their repository to the skill identity."""
        result = CliRunner().invoke(cli, ["queue", "enqueue", "acme/tools"])
        assert result.exit_code == 0, result.output
        [job] = _store(db_url).fetch_queued_jobs(10)
        assert job.id == result.stdout.strip()
        assert job.repo == "acme/tools"
        assert job.effective_source == "github"

    def test_enqueue_clawhub(self, db_url: str) -> None:
        """ClawHub jobs keep the slug and no repository."""
        result = CliRunner().invoke(cli, ["queue", "enqueue", "alice/pdf", "--source", "clawhub", "--slug", "pdf"])
        assert result.exit_code == 0, result.output
        [job] = _store(db_url).fetch_queued_jobs(10)
        assert job.clawhub_slug == "pdf"
        assert job.repo is None
        assert job.effective_source == "clawhub"

    def test_enqueue_bad_target(self, db_url: str) -> None:
        result = CliRunner().invoke(cli, ["queue", "enqueue", "tools"])
        assert result.exit_code == 2

    def test_drain_empty_dry_run(self, db_url: str) -> None:
        """A dry-run drain of an empty queue reports nothing to do."""
        result = CliRunner().invoke(cli, ["queue", "drain", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "No queued scan jobs found" in result.output

    def test_drain_requires_admin_key(self, db_url: str) -> None:
        """Without --dry-run an admin key is required."""
        result = CliRunner().invoke(cli, ["queue", "drain"])
        assert result.exit_code == 1
        assert "PYX_ADMIN_API_KEY" in result.output
