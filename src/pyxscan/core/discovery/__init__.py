"""Skill discovery: tree filtering, heuristic partitioning and models."""

from pyxscan.core.discovery.heuristics import (
    default_description,
    detect_skills,
    enrich_descriptions,
    extract_skill_info,
    parse_frontmatter_description,
    restrict_to_cache,
)
from pyxscan.core.discovery.models import DiscoveredSkill, RepoTree, TreeEntry
from pyxscan.core.discovery.tree import (
    is_documentation_only,
    select_full_mode,
    select_scoped_mode,
)

__all__ = [
    "DiscoveredSkill",
    "RepoTree",
    "TreeEntry",
    "default_description",
    "detect_skills",
    "enrich_descriptions",
    "extract_skill_info",
    "is_documentation_only",
    "parse_frontmatter_description",
    "restrict_to_cache",
    "select_full_mode",
    "select_scoped_mode",
]
