"""File selection rules for repository trees.

Decides which files of a source tree are worth downloading, in which
order, and whether a repository is documentation-only (nothing to scan,
so no code download should happen at all).
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable

from pyxscan.core.discovery.models import TreeEntry

# Extensions downloaded for analysis.
SOURCE_EXTENSIONS: frozenset[str] = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
    ".py", ".rs", ".go", ".rb",
    ".sh", ".bash", ".zsh",
    ".json", ".yaml", ".yml", ".toml",
    ".md", ".txt",
})

# Extensions that do not count as executable source for the
# documentation-only check.
NON_CODE_EXTENSIONS: frozenset[str] = frozenset({
    ".md", ".txt", ".json", ".yaml", ".yml", ".toml",
})

# Directory fragments that are never downloaded.
SKIP_DIRECTORIES: tuple[str, ...] = (
    "node_modules/", ".git/", "dist/", "build/", ".next/",
    "coverage/", ".turbo/", "vendor/", "__pycache__/",
)

# File suffixes that are never downloaded (lock files, bundles, binaries).
SKIP_SUFFIXES: tuple[str, ...] = (
    ".lock", "lock.json", "lock.yaml", "-lock.yml",
    ".min.js", ".min.css", ".map", ".wasm",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".mp3", ".mp4", ".wav", ".avi", ".mov",
    ".pdf", ".zip", ".gz", ".tgz", ".bz2", ".xz", ".tar",
)

# Basenames downloaded before everything else (lowercase).
PRIORITY_FILES: tuple[str, ...] = (
    "package.json", "readme.md", "readme", "manifest.json",
    "pyproject.toml", "cargo.toml", "go.mod",
)

SKILL_FILENAME = "SKILL.md"


def extension_of(path: str) -> str:
    """Return the lowercase extension of *path* (``""`` when absent)."""
    return posixpath.splitext(path)[1].lower()


def should_skip(path: str) -> bool:
    """Return True when *path* lives in a skipped directory or is a skipped file type."""
    lowered = path.lower()
    if any(lowered.startswith(d) or f"/{d}" in lowered for d in SKIP_DIRECTORIES):
        return True
    if ".tar." in lowered:
        return True
    return lowered.endswith(SKIP_SUFFIXES)


def is_source_file(path: str) -> bool:
    return extension_of(path) in SOURCE_EXTENSIONS and not should_skip(path)


def is_skill_manifest(path: str) -> bool:
    return posixpath.basename(path) == SKILL_FILENAME


def is_priority_file(path: str) -> bool:
    base = posixpath.basename(path).lower()
    return any(base.startswith(p) for p in PRIORITY_FILES)


def is_documentation_only(paths: Iterable[str]) -> bool:
    """Return True when a tree holds no SKILL.md and no executable source.

    Markdown, text, JSON, YAML and TOML do not count as source for this
    check. Run it on the tree listing, before any blob is downloaded.

    Args:
        paths: Every blob path of the repository.

    Returns:
        True if the repository has nothing worth analyzing.
    """
    for path in paths:
        if is_skill_manifest(path):
            return False
        ext = extension_of(path)
        if ext in SOURCE_EXTENSIONS and ext not in NON_CODE_EXTENSIONS and not should_skip(path):
            return False
    return True


def select_full_mode(entries: Iterable[TreeEntry], max_file_bytes: int) -> list[TreeEntry]:
    """Choose and order blobs for a whole-repository download.

    Oversized blobs are dropped. Priority manifests come first, the rest
    follows in path order.
    """
    candidates = [
        e for e in entries
        if e.is_blob and is_source_file(e.path) and e.size <= max_file_bytes
    ]
    return sorted(candidates, key=lambda e: (not is_priority_file(e.path), e.path))


def select_scoped_mode(entries: Iterable[TreeEntry], wanted: Iterable[str]) -> list[TreeEntry]:
    """Choose blobs whose path is in *wanted*, keeping tree order.

    SKILL.md files are always kept; other files must pass the source filter.
    """
    wanted_set = set(wanted)
    return [
        e for e in entries
        if e.is_blob and e.path in wanted_set
        and (is_skill_manifest(e.path) or is_source_file(e.path))
    ]
