"""Dependency extraction from package manifests.

Reads every ``package.json`` in a file set, merges its ``dependencies``
and ``devDependencies`` and strips semver range operators. References
that cannot be resolved against the public registry (workspace, git,
file, link, URLs, wildcards) are discarded.
"""

from __future__ import annotations

import json
import logging
import posixpath
import re
from collections.abc import Iterable

from pyxscan.core.cache import CachedFile
from pyxscan.core.deps.models import PackageDependency

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

_RANGE_PREFIX = re.compile(r"^[\^~>=<*| ]+")
_UNRESOLVABLE_PREFIXES: tuple[str, ...] = (
    "file:", "git", "workspace:", "link:", "http:", "https:", "npm:",
)


def strip_range(version: str) -> str:
    """Remove leading range operators and keep the first version token.

    Examples:
        ``"^4.17.1"`` -> ``"4.17.1"``; ``">=1.0.0 <2.0.0"`` -> ``"1.0.0"``.
    """
    stripped = _RANGE_PREFIX.sub("", version.strip())
    tokens = stripped.split()
    return tokens[0] if tokens else ""


def is_resolvable(raw: str) -> bool:
    raw = raw.strip()
    if not raw or raw == "*":
        return False
    return not raw.startswith(_UNRESOLVABLE_PREFIXES)


def is_manifest(path: str) -> bool:
    return posixpath.basename(path) == MANIFEST_NAME


def extract_dependencies(files: Iterable[CachedFile]) -> list[PackageDependency]:
    """Collect resolvable dependencies from every manifest in *files*.

    Args:
        files: Cached files; only ``package.json`` files are read.

    Returns:
        Dependencies in manifest order, then declaration order. A package
        declared in several manifests appears once per manifest.
    """
    deps: list[PackageDependency] = []
    for cached in files:
        if not is_manifest(cached.path):
            continue
        try:
            manifest = json.loads(cached.content)
        except ValueError:
            logger.debug("Skipping unparseable manifest %s", cached.path)
            continue
        if not isinstance(manifest, dict):
            continue

        merged: dict[str, object] = {}
        for key in ("dependencies", "devDependencies"):
            section = manifest.get(key)
            if isinstance(section, dict):
                merged.update(section)

        for name, raw in merged.items():
            if not isinstance(raw, str) or not is_resolvable(raw):
                continue
            version = strip_range(raw)
            if not version:
                continue
            deps.append(PackageDependency(name=name, version=version, manifest=cached.path))
    return deps
