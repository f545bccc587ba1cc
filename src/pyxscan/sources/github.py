"""GitHub source-tree provider.

Resolves the latest commit of a repository, lists its tree recursively
and downloads blobs. ``fetch_code`` turns a tree into a ``CodeCache`` in
one of two modes:

- full mode: every source file up to ``max_file_bytes``, priority
  manifests first, total capped at ``max_total_bytes`` (the crossing
  file is cut and marked ``[... truncated]``);
- scoped mode: only the requested paths, uncapped (per-skill budgets are
  applied later at prompt time).

All requests go through ``HttpClient`` and are retried on transient
failures. Repository metadata (stars, forks, visibility) is best-effort.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from pyxscan.core.cache import CachedFile, CodeCache, byte_length
from pyxscan.core.discovery.models import RepoTree, TreeEntry
from pyxscan.core.discovery.tree import select_full_mode, select_scoped_mode
from pyxscan.exceptions import PyxScanError, SourceFetchError
from pyxscan.sources.http_client import DEFAULT_TIMEOUT, HttpClient
from pyxscan.sources.retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"

# Total code budget for a full-mode download (bytes).
MAX_CODE_BYTES: int = 200 * 1024

# Largest single file downloaded in full mode (bytes).
MAX_FILE_BYTES: int = 100_000

TRUNCATION_SUFFIX = "\n[... truncated]"


@dataclass(frozen=True)
class RepoMetadata:
    """Public repository statistics."""

    stars: int = 0
    forks: int = 0
    is_private: bool = False


class GitHubClient:
    """Async client for the GitHub REST API."""

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    @classmethod
    def create(
        cls,
        token: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retry: RetryPolicy = DEFAULT_RETRY_POLICY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GitHubClient:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return cls(HttpClient(GITHUB_API, headers=headers, timeout=timeout, retry=retry, transport=transport))

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def latest_commit(self, owner: str, repo: str) -> str:
        """Return the SHA of the newest commit on the default branch.

        Raises:
            SourceFetchError: If the repository has no commits.
        """
        data = await self._http.get_json(
            f"/repos/{owner}/{repo}/commits",
            params={"per_page": "1"},
            label=f"GitHub commits {owner}/{repo}",
        )
        sha = data[0].get("sha") if isinstance(data, list) and data and isinstance(data[0], dict) else None
        if not sha:
            raise SourceFetchError(f"No commits found for {owner}/{repo}")
        return sha

    async def repo_metadata(self, owner: str, repo: str) -> RepoMetadata | None:
        """Return stars, forks and visibility, or None when unavailable."""
        try:
            data = await self._http.get_json(
                f"/repos/{owner}/{repo}", label=f"GitHub repo {owner}/{repo}"
            )
        except PyxScanError as exc:
            logger.warning("Could not fetch metadata for %s/%s: %s", owner, repo, exc)
            return None
        if not isinstance(data, dict):
            return None
        return RepoMetadata(
            stars=int(data.get("stargazers_count") or 0),
            forks=int(data.get("forks_count") or 0),
            is_private=bool(data.get("private")),
        )

    async def tree(self, owner: str, repo: str, sha: str) -> RepoTree:
        """List the repository tree at *sha* recursively."""
        data = await self._http.get_json(
            f"/repos/{owner}/{repo}/git/trees/{sha}",
            params={"recursive": "1"},
            label=f"GitHub tree {owner}/{repo}",
        )
        if not isinstance(data, dict) or not isinstance(data.get("tree"), list):
            raise SourceFetchError(f"Unexpected tree response for {owner}/{repo}")
        truncated = bool(data.get("truncated"))
        if truncated:
            logger.warning("Tree for %s/%s is truncated; some files may be missing", owner, repo)
        entries = tuple(
            TreeEntry(
                path=item["path"],
                type=item.get("type", "blob"),
                sha=item.get("sha", ""),
                size=int(item.get("size") or 0),
            )
            for item in data["tree"]
            if isinstance(item, dict) and "path" in item
        )
        return RepoTree(entries=entries, truncated=truncated)

    async def blob(self, owner: str, repo: str, sha: str) -> str:
        """Download and decode one blob."""
        data = await self._http.get_json(
            f"/repos/{owner}/{repo}/git/blobs/{sha}",
            label=f"GitHub blob {owner}/{repo}@{sha[:7]}",
        )
        return _decode_blob(data)

    # ------------------------------------------------------------------
    # Code assembly
    # ------------------------------------------------------------------

    async def fetch_code(
        self,
        owner: str,
        repo: str,
        tree: RepoTree,
        *,
        scoped_paths: Iterable[str] | None = None,
        max_total_bytes: int = MAX_CODE_BYTES,
        max_file_bytes: int = MAX_FILE_BYTES,
    ) -> CodeCache:
        """Download files of *tree* into a ``CodeCache``.

        Args:
            owner: Repository owner.
            repo: Repository name.
            tree: Tree listing at the scanned commit.
            scoped_paths: When given, download only these paths (scoped
                mode, no total cap).
            max_total_bytes: Total budget in full mode.
            max_file_bytes: Per-file limit in full mode.

        Raises:
            SourceFetchError: If no file could be downloaded.
        """
        scoped = scoped_paths is not None
        if scoped:
            entries = select_scoped_mode(tree.entries, scoped_paths or ())
        else:
            entries = select_full_mode(tree.entries, max_file_bytes)
        logger.info(
            "Fetching %d file(s) from %s/%s (%s mode)",
            len(entries), owner, repo, "scoped" if scoped else "full",
        )

        files: list[CachedFile] = []
        total = 0
        for entry in entries:
            try:
                content = await self.blob(owner, repo, entry.sha)
            except PyxScanError as exc:
                logger.warning("Skipping %s: %s", entry.path, exc)
                continue

            if not scoped:
                size = byte_length(content)
                if total + size > max_total_bytes:
                    remaining = max_total_bytes - total
                    if remaining > 0:
                        head = content.encode("utf-8")[:remaining].decode("utf-8", errors="ignore")
                        files.append(CachedFile(entry.path, head + TRUNCATION_SUFFIX))
                    logger.info("Code budget (%dKB) reached at %s", max_total_bytes // 1024, entry.path)
                    break
                total += size
            files.append(CachedFile(entry.path, content))

        if not files:
            raise SourceFetchError(f"No files could be fetched from {owner}/{repo}")
        return CodeCache(files)


def _decode_blob(data: Any) -> str:
    if not isinstance(data, dict) or not isinstance(data.get("content"), str):
        raise SourceFetchError("Unexpected blob response")
    if data.get("encoding", "base64") != "base64":
        return data["content"]
    raw = base64.b64decode(data["content"])
    return raw.decode("utf-8", errors="replace")
