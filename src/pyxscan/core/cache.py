"""In-memory, read-only cache of repository source files.

A ``CodeCache`` is filled once per scan (from a source-tree provider or a
local directory) and then read through two views:

- ``get_all_code()`` renders every file, used for AI discovery and for
  whole-repository analysis.
- ``get_scoped_code(paths, max_bytes)`` renders only the files of one
  skill and stops once a byte budget would be exceeded, ending the text
  with ``SCOPED_TRUNCATION_MARKER``.

Usage::

    cache = CodeCache([CachedFile("index.js", "console.log(1)\\n")])
    cache.get_all_code()   # "--- index.js ---\\nconsole.log(1)\\n"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pyxscan.core.discovery.tree import is_skill_manifest, is_source_file

logger = logging.getLogger(__name__)

BLOCK_SEPARATOR = "\n\n"
SCOPED_TRUNCATION_MARKER = "\n\n[... truncated: per-skill byte limit reached]"


def byte_length(text: str) -> int:
    """UTF-8 length of *text* in bytes."""
    return len(text.encode("utf-8"))


def _cut_to_bytes(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    return text.encode("utf-8")[:limit].decode("utf-8", errors="ignore")


@dataclass(frozen=True)
class CachedFile:
    """A single fetched file.

    Attributes:
        path: Repository-relative POSIX path.
        content: Decoded text content.
    """

    path: str
    content: str

    @property
    def size(self) -> int:
        return byte_length(self.content)

    def render(self) -> str:
        """Render the file as a path-headed block."""
        return f"--- {self.path} ---\n{self.content}"


class CodeCache:
    """Ordered, immutable collection of cached files."""

    def __init__(self, files: Iterable[CachedFile] = ()) -> None:
        self._files: tuple[CachedFile, ...] = tuple(files)
        self._paths: frozenset[str] = frozenset(f.path for f in self._files)

    @classmethod
    def from_directory(cls, root: Path, *, max_file_bytes: int = 100_000) -> CodeCache:
        """Load source files below *root* using the remote-tree filters.

        Args:
            root: Directory to read.
            max_file_bytes: Files larger than this are skipped.

        Returns:
            A cache whose paths are relative to *root*, in sorted order.
        """
        files: list[CachedFile] = []
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            rel = path.relative_to(root).as_posix()
            if not (is_skill_manifest(rel) or is_source_file(rel)):
                continue
            if path.stat().st_size > max_file_bytes:
                logger.debug("Skipping oversized file %s", rel)
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.debug("Skipping unreadable file %s", rel, exc_info=True)
                continue
            files.append(CachedFile(rel, content))
        return cls(files)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def files(self) -> tuple[CachedFile, ...]:
        return self._files

    @property
    def paths(self) -> frozenset[str]:
        return self._paths

    @property
    def file_count(self) -> int:
        return len(self._files)

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def get(self, path: str) -> CachedFile | None:
        for cached in self._files:
            if cached.path == path:
                return cached
        return None

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def validate_paths(self, paths: Iterable[str]) -> list[str]:
        """Return the requested paths that exist in the cache.

        Request order is kept; unknown paths and repeats are dropped.
        """
        seen: set[str] = set()
        valid: list[str] = []
        for path in paths:
            if path in self._paths and path not in seen:
                seen.add(path)
                valid.append(path)
        return valid

    def subset(self, paths: Iterable[str]) -> CodeCache:
        """Return a new cache restricted to *paths*, in cache order."""
        wanted = set(paths)
        return CodeCache(f for f in self._files if f.path in wanted)

    def get_all_code(self) -> str:
        return BLOCK_SEPARATOR.join(f.render() for f in self._files)

    def get_scoped_code(self, paths: Iterable[str], max_bytes: int | None = None) -> str:
        """Render the files in *paths* within a byte budget.

        Files are rendered in cache order. Once the next block would push
        the running total past *max_bytes*, rendering stops and
        ``SCOPED_TRUNCATION_MARKER`` is appended. The result never exceeds
        ``max_bytes`` plus the marker length.

        Args:
            paths: Paths to include; unknown paths are ignored.
            max_bytes: Byte budget, or None for no limit.

        Returns:
            The rendered code, or ``""`` when no path matched.
        """
        wanted = set(paths)
        matched = [f for f in self._files if f.path in wanted]
        if not matched:
            return ""

        blocks = [f.render() for f in matched]
        if max_bytes is None:
            return BLOCK_SEPARATOR.join(blocks)

        parts: list[str] = []
        used = 0
        for block in blocks:
            cost = byte_length(block) + (byte_length(BLOCK_SEPARATOR) if parts else 0)
            if used + cost > max_bytes:
                break
            parts.append(block)
            used += cost

        if len(parts) == len(blocks):
            return BLOCK_SEPARATOR.join(parts)

        logger.info(
            "Per-skill limit (%dKB) reached after %d/%d files",
            max_bytes // 1024, len(parts), len(blocks),
        )
        if not parts:
            # Nothing fits whole: keep the head of the first block.
            return _cut_to_bytes(blocks[0], max_bytes) + SCOPED_TRUNCATION_MARKER
        return BLOCK_SEPARATOR.join(parts) + SCOPED_TRUNCATION_MARKER
