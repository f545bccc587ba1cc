"""AI-assisted analysis: prompts, engine, verdict model and consistency."""

from pyxscan.core.analysis.consistency import enforce_consistency, tier_for_score
from pyxscan.core.analysis.engine import AnalysisEngine, ClaudeCliEngine, parse_envelope
from pyxscan.core.analysis.models import (
    THREAT_CATEGORIES,
    CategoryEvidence,
    Intent,
    Recommendation,
    ScanOutput,
    SkillAbout,
    SkillCategory,
    TrustStatus,
)
from pyxscan.core.analysis.orchestrator import SkillAnalyzer

__all__ = [
    "THREAT_CATEGORIES",
    "AnalysisEngine",
    "CategoryEvidence",
    "ClaudeCliEngine",
    "Intent",
    "Recommendation",
    "ScanOutput",
    "SkillAbout",
    "SkillAnalyzer",
    "SkillCategory",
    "TrustStatus",
    "enforce_consistency",
    "parse_envelope",
    "tier_for_score",
]
