"""Analysis orchestration: prompt, invoke, parse, enforce.

``SkillAnalyzer`` is the single entry point the pipeline uses for AI
work. Every verdict it returns has passed ``ScanOutput.from_dict`` and
``enforce_consistency``; failures surface as ``AnalysisError`` and are
never retried here.

Usage::

    analyzer = SkillAnalyzer(ClaudeCliEngine(), model="sonnet")
    skills = await analyzer.discover_skills("acme", "tools", cache)
    output = await analyzer.analyze_skill("acme", "tools", skills[0], cache)
"""

from __future__ import annotations

import logging
from typing import Any

from pyxscan.core.analysis.consistency import enforce_consistency
from pyxscan.core.analysis.engine import AnalysisEngine
from pyxscan.core.analysis.models import ScanOutput
from pyxscan.core.analysis.prompts import (
    build_analysis_prompt,
    build_discovery_prompt,
    build_discovery_system_prompt,
    build_scoped_analysis_prompt,
    build_system_prompt,
)
from pyxscan.core.analysis.schema import DISCOVERY_SCHEMA, SCAN_RESULT_SCHEMA
from pyxscan.core.cache import CodeCache
from pyxscan.core.discovery.models import DiscoveredSkill
from pyxscan.exceptions import EngineOutputError

logger = logging.getLogger(__name__)

# Per-skill code budget for scoped prompts (bytes).
DEFAULT_SKILL_CODE_BYTES: int = 150 * 1024


class SkillAnalyzer:
    """Builds prompts, calls the engine and validates verdicts."""

    def __init__(
        self,
        engine: AnalysisEngine,
        model: str = "sonnet",
        *,
        max_skill_code_bytes: int = DEFAULT_SKILL_CODE_BYTES,
    ) -> None:
        self.engine = engine
        self.model = model
        self.max_skill_code_bytes = max_skill_code_bytes

    async def analyze_repository(
        self,
        owner: str,
        name: str,
        cache: CodeCache,
        pre_scan_context: str | None = None,
    ) -> ScanOutput:
        """Analyze everything in *cache* as one implicit skill."""
        logger.info("Analyzing %s/%s as a whole (%d files)", owner, name, cache.file_count)
        prompt = build_analysis_prompt(owner, name, cache.get_all_code(), pre_scan_context)
        return await self._scan(prompt, f"{owner}/{name}")

    async def analyze_skill(
        self,
        owner: str,
        repo_name: str,
        skill: DiscoveredSkill,
        cache: CodeCache,
        pre_scan_context: str | None = None,
    ) -> ScanOutput:
        """Analyze one skill using only its own files, within the byte budget."""
        code = cache.get_scoped_code(skill.relevant_files, self.max_skill_code_bytes)
        logger.info(
            "Analyzing skill %s of %s/%s (%d files)",
            skill.name, owner, repo_name, len(skill.relevant_files),
        )
        prompt = build_scoped_analysis_prompt(
            owner, repo_name, skill.name, skill.description, code, pre_scan_context
        )
        return await self._scan(prompt, f"{owner}/{repo_name}:{skill.name}")

    async def discover_skills(self, owner: str, repo_name: str, cache: CodeCache) -> list[DiscoveredSkill]:
        """Ask the engine to enumerate skills and validate its answer.

        Returned file paths are intersected with the cache; entries left
        without files are dropped. A malformed ``skills`` value is logged
        and treated as no skills.
        """
        raw = await self.engine.invoke(
            build_discovery_prompt(owner, repo_name, cache.get_all_code()),
            build_discovery_system_prompt(),
            DISCOVERY_SCHEMA,
            self.model,
        )
        entries = raw.get("skills")
        if not isinstance(entries, list):
            logger.warning("Discovery for %s/%s returned an invalid skills value", owner, repo_name)
            return []
        return _validate_discovered(entries, cache)

    async def _scan(self, prompt: str, label: str) -> ScanOutput:
        raw = await self.engine.invoke(prompt, build_system_prompt(), SCAN_RESULT_SCHEMA, self.model)
        if not raw.get("trust_status"):
            raise EngineOutputError(f"engine did not return a scan verdict for {label}")
        return enforce_consistency(ScanOutput.from_dict(raw))


def _validate_discovered(entries: list[Any], cache: CodeCache) -> list[DiscoveredSkill]:
    skills: list[DiscoveredSkill] = []
    names: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("skill_name")
        files = entry.get("relevant_files")
        if not isinstance(name, str) or not name.strip() or not isinstance(files, list):
            continue
        name = name.strip()
        valid = cache.validate_paths(f for f in files if isinstance(f, str))
        dropped = len(files) - len(valid)
        if dropped:
            logger.debug("Skill %s: %d listed file(s) not in the repository", name, dropped)
        if not valid:
            logger.warning("Dropping discovered skill %s: no valid files", name)
            continue
        if name in names:
            logger.warning("Dropping duplicate discovered skill %s", name)
            continue
        names.add(name)
        description = entry.get("description")
        skills.append(
            DiscoveredSkill(
                name=name,
                description=description if isinstance(description, str) else "",
                relevant_files=tuple(valid),
            )
        )
    return skills
