"""Deterministic skill discovery from directory conventions.

Agent skills are usually laid out as one directory per skill holding a
``SKILL.md`` file. This module recognizes the common conventions and
partitions a repository's files into skills without any AI call:

    .claude/skills/<name>/SKILL.md
    skills/<name>/SKILL.md
    extensions/<ext>/skills/<name>/SKILL.md    -> "<ext>-<name>"
    extensions/<name>/SKILL.md
    .agents/skills/<name>/SKILL.md
    <anything>/<name>/SKILL.md                 (generic fallback)

Every file below a skill's directory belongs to that skill. The root
README and package manifest are shared by every skill.

Descriptions are taken from the SKILL.md YAML frontmatter when present::

    ---
    name: web-search
    description: Search the web and summarize results
    ---
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import yaml

from pyxscan.core.discovery.models import DiscoveredSkill
from pyxscan.core.discovery.tree import SKILL_FILENAME

if TYPE_CHECKING:
    from pyxscan.core.cache import CodeCache

logger = logging.getLogger(__name__)

# Root files shared by every skill (compared lowercase).
SHARED_ROOT_FILES: frozenset[str] = frozenset({"readme.md", "package.json"})

_FRONTMATTER_PATTERN = re.compile(r"\A---\s*\n(.*?)\n---", re.DOTALL)

# (pattern, name builder) in priority order. Each pattern matches the
# full SKILL.md path and captures the skill directory as "base".
_CONVENTIONS: list[tuple[re.Pattern[str], Any]] = [
    (
        re.compile(r"^(?P<base>(?:.*/)?\.claude/skills/(?P<name>[^/]+))/SKILL\.md$"),
        lambda m: m.group("name"),
    ),
    (
        re.compile(r"^(?P<base>(?:.*/)?extensions/(?P<ext>[^/]+)/skills/(?P<name>[^/]+))/SKILL\.md$"),
        lambda m: f"{m.group('ext')}-{m.group('name')}",
    ),
    (
        re.compile(r"^(?P<base>(?:.*/)?\.agents/skills/(?P<name>[^/]+))/SKILL\.md$"),
        lambda m: m.group("name"),
    ),
    (
        re.compile(r"^(?P<base>(?:.*/)?skills/(?P<name>[^/]+))/SKILL\.md$"),
        lambda m: m.group("name"),
    ),
    (
        re.compile(r"^(?P<base>(?:.*/)?extensions/(?P<name>[^/]+))/SKILL\.md$"),
        lambda m: m.group("name"),
    ),
    (
        re.compile(r"^(?P<base>(?:.*/)?(?P<name>[^/]+))/SKILL\.md$"),
        lambda m: m.group("name"),
    ),
]


def default_description(name: str) -> str:
    return f"Claude Code skill: {name}"


def extract_skill_info(path: str) -> tuple[str, str] | None:
    """Map a nested SKILL.md path to ``(skill_name, base_path)``.

    Args:
        path: Repository-relative path ending in ``/SKILL.md``.

    Returns:
        The derived skill name and its directory, or None when the path
        is not a nested SKILL.md.
    """
    for pattern, build_name in _CONVENTIONS:
        match = pattern.match(path)
        if match:
            return build_name(match), match.group("base")
    return None


def shared_root_files(paths: Iterable[str]) -> list[str]:
    return [p for p in paths if p.lower() in SHARED_ROOT_FILES]


def detect_skills(paths: Iterable[str], repo_name: str | None = None) -> list[DiscoveredSkill]:
    """Partition repository paths into skills by directory convention.

    Args:
        paths: Every blob path of the repository, in tree order.
        repo_name: Repository name, used for a root-level SKILL.md.

    Returns:
        Discovered skills in SKILL.md path order. Empty when no
        convention matched.
    """
    all_paths = list(paths)
    shared = shared_root_files(all_paths)

    found: list[tuple[str, str, str]] = []  # (name, base, skill_md)
    taken: dict[str, str] = {}
    for path in sorted(p for p in all_paths if p.endswith("/" + SKILL_FILENAME)):
        info = extract_skill_info(path)
        if info is None:
            continue
        name, base = info
        if name in taken and taken[name] != base:
            name = base.replace("/", "-")
        taken[name] = base
        found.append((name, base, path))

    if not found and SKILL_FILENAME in all_paths and repo_name:
        logger.debug("Root-level SKILL.md found; treating %s as a single skill", repo_name)
        return [
            DiscoveredSkill(
                name=repo_name,
                description=default_description(repo_name),
                relevant_files=tuple(all_paths),
                skill_md_path=SKILL_FILENAME,
            )
        ]

    skills: list[DiscoveredSkill] = []
    for name, base, skill_md in found:
        prefix = base + "/"
        files = [skill_md] + [p for p in all_paths if p.startswith(prefix) and p != skill_md]
        files.extend(p for p in shared if p not in files)
        skills.append(
            DiscoveredSkill(
                name=name,
                description=default_description(name),
                relevant_files=tuple(files),
                base_path=base,
                skill_md_path=skill_md,
            )
        )
    return skills


def parse_frontmatter_description(content: str) -> str | None:
    """Return the ``description`` field of a SKILL.md YAML frontmatter.

    Malformed frontmatter and non-string descriptions yield None.
    """
    match = _FRONTMATTER_PATTERN.match(content)
    if not match:
        return None
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        logger.debug("Malformed SKILL.md frontmatter", exc_info=True)
        return None
    if not isinstance(data, dict):
        return None
    description = data.get("description")
    if isinstance(description, str) and description.strip():
        return description.strip()
    return None


def enrich_descriptions(skills: list[DiscoveredSkill], cache: CodeCache) -> list[DiscoveredSkill]:
    """Replace default descriptions with SKILL.md frontmatter where available."""
    enriched: list[DiscoveredSkill] = []
    for skill in skills:
        cached = cache.get(skill.skill_md_path) if skill.skill_md_path else None
        description = parse_frontmatter_description(cached.content) if cached else None
        enriched.append(replace(skill, description=description) if description else skill)
    return enriched


def restrict_to_cache(skills: list[DiscoveredSkill], cache: CodeCache) -> list[DiscoveredSkill]:
    """Intersect each skill's files with the cache and drop empty skills."""
    kept: list[DiscoveredSkill] = []
    for skill in skills:
        valid = cache.validate_paths(skill.relevant_files)
        if not valid:
            logger.warning("Dropping skill %s: none of its files were fetched", skill.name)
            continue
        kept.append(replace(skill, relevant_files=tuple(valid)))
    return kept


