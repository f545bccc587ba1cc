"""Tests for the GitHub source-tree provider."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable, Callable
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from pyxscan.core.discovery.models import RepoTree, TreeEntry
from pyxscan.exceptions import SourceFetchError
from pyxscan.sources.github import GITHUB_API, TRUNCATION_SUFFIX, GitHubClient
from pyxscan.sources.http_client import HttpClient

BLOBS = {
    "s1": "{\"name\": \"demo\"}",
    "s2": "console.log('a');\n",
    "s3": "print('b')\n",
    "s4": "# Fmt\n",
}

TREE = RepoTree(entries=(
    TreeEntry("src/a.js", "blob", "s2", 18),
    TreeEntry("package.json", "blob", "s1", 16),
    TreeEntry("tool.py", "blob", "s3", 11),
    TreeEntry("skills/fmt/SKILL.md", "blob", "s4", 6),
    TreeEntry("logo.png", "blob", "sx", 10),
    TreeEntry("src", "tree", "t1", 0),
))


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/commits"):
        return httpx.Response(200, json=[{"sha": "abc123"}])
    if path == "/repos/acme/tools":
        return httpx.Response(200, json={"stargazers_count": 12, "forks_count": 3, "private": False})
    if "/git/trees/" in path:
        return httpx.Response(200, json={
            "truncated": True,
            "tree": [{"path": "a.py", "type": "blob", "sha": "s3", "size": 11}, {"type": "blob"}],
        })
    if "/git/blobs/" in path:
        sha = path.rsplit("/", 1)[1]
        if sha not in BLOBS:
            return httpx.Response(404)
        content = base64.b64encode(BLOBS[sha].encode()).decode()
        return httpx.Response(200, json={"content": content, "encoding": "base64"})
    return httpx.Response(404)


def _run(fn: Callable[[GitHubClient], Awaitable[Any]], handler: Any = _handler) -> Any:
    async def _inner() -> Any:
        client = GitHubClient(HttpClient(GITHUB_API, transport=httpx.MockTransport(handler), sleep=AsyncMock()))
        try:
            return await fn(client)
        finally:
            await client.aclose()

    return asyncio.run(_inner())


class TestPrimitives:
    """Commit, metadata and tree lookups."""

    def test_latest_commit(self) -> None:
        """The first commit SHA is returned."""
        assert _run(lambda c: c.latest_commit("acme", "tools")) == "abc123"

    def test_no_commits(self) -> None:
        """An empty commit list is a fetch error."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        with pytest.raises(SourceFetchError, match="No commits"):
            _run(lambda c: c.latest_commit("acme", "empty"), handler)

    def test_metadata(self) -> None:
        """Stars and forks are read from the repository document."""
        meta = _run(lambda c: c.repo_metadata("acme", "tools"))
        assert (meta.stars, meta.forks, meta.is_private) == (12, 3, False)

    def test_metadata_is_best_effort(self) -> None:
        """A failed metadata lookup returns None."""
        assert _run(lambda c: c.repo_metadata("acme", "missing")) is None

    def test_truncated_tree(self) -> None:
        """Truncation is reported and malformed entries are skipped."""
        tree = _run(lambda c: c.tree("acme", "tools", "abc123"))
        assert tree.truncated
        assert tree.blob_paths == ["a.py"]


class TestFetchCode:
    """Full and scoped downloads."""

    def test_full_mode_priority_first(self) -> None:
        """Priority manifests lead and non-source files are skipped."""
        cache = _run(lambda c: c.fetch_code("acme", "tools", TREE))
        paths = [f.path for f in cache.files]
        assert paths[0] == "package.json"
        assert "logo.png" not in paths
        assert cache.get("tool.py").content == "print('b')\n"

    def test_full_mode_budget(self) -> None:
        """The crossing file is cut and marked, later files are dropped."""
        cache = _run(lambda c: c.fetch_code("acme", "tools", TREE, max_total_bytes=20))
        paths = [f.path for f in cache.files]
        assert paths == ["package.json", "skills/fmt/SKILL.md"]
        assert cache.get("skills/fmt/SKILL.md").content == "# Fm" + TRUNCATION_SUFFIX

    def test_scoped_mode(self) -> None:
        """Only requested paths are downloaded, uncapped."""
        cache = _run(lambda c: c.fetch_code(
            "acme", "tools", TREE, scoped_paths=["skills/fmt/SKILL.md", "tool.py"], max_total_bytes=1,
        ))
        assert sorted(cache.paths) == ["skills/fmt/SKILL.md", "tool.py"]

    def test_nothing_fetched(self) -> None:
        """Failing every blob is a fetch error."""
        tree = RepoTree(entries=(TreeEntry("x.py", "blob", "unknown", 5),))
        with pytest.raises(SourceFetchError, match="No files"):
            _run(lambda c: c.fetch_code("acme", "tools", tree))
