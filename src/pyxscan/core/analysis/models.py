"""Data models for AI-assisted scan verdicts.

``ScanOutput`` is the unit stored per skill. It is parsed strictly from
the engine's structured output: a missing field, an unknown enum value
or an out-of-range number is an ``EngineOutputError``, never silently
patched. Cross-field agreement (score, intent, tiers) is enforced
separately by ``pyxscan.core.analysis.consistency``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pyxscan.exceptions import EngineOutputError

# The seven fixed threat categories, in report order.
THREAT_CATEGORIES: tuple[str, ...] = (
    "data_exfiltration",
    "destructive_commands",
    "secret_access",
    "obfuscation",
    "prompt_injection",
    "social_engineering",
    "excessive_permissions",
)


class TrustStatus(str, Enum):
    VERIFIED = "verified"
    CAUTION = "caution"
    FAILED = "failed"


class Intent(str, Enum):
    BENIGN = "benign"
    RISKY = "risky"
    MALICIOUS = "malicious"


class Recommendation(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGER = "danger"


class SkillCategory(str, Enum):
    DEVELOPER_TOOLS = "developer-tools"
    VERSION_CONTROL = "version-control"
    WEB_BROWSER = "web-browser"
    DATA_FILES = "data-files"
    CLOUD_INFRA = "cloud-infra"
    COMMUNICATION = "communication"
    SEARCH_RESEARCH = "search-research"
    PRODUCTIVITY = "productivity"
    OTHER = "other"


@dataclass(frozen=True)
class CategoryEvidence:
    """Verdict for one threat category."""

    detected: bool
    evidence: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"detected": self.detected, "evidence": list(self.evidence)}


@dataclass(frozen=True)
class SkillAbout:
    """Factual description of what a skill does."""

    purpose: str
    capabilities: tuple[str, ...] = ()
    use_cases: tuple[str, ...] = ()
    permissions_required: tuple[str, ...] = ()
    security_notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "purpose": self.purpose,
            "capabilities": list(self.capabilities),
            "use_cases": list(self.use_cases),
            "permissions_required": list(self.permissions_required),
            "security_notes": self.security_notes,
        }


@dataclass(frozen=True)
class ScanOutput:
    """The AI-assisted verdict for one skill.

    Attributes:
        trust_status: Trust tier derived from ``risk_score``.
        intent: Classified intent; gates the valid score range.
        recommendation: Install recommendation derived from ``risk_score``.
        risk_score: 0.0 (no risk) to 10.0 (confirmed malware).
        confidence: Engine certainty, 0 to 100.
        summary: Human-readable overview of the findings.
        details: Evidence per threat category.
        skill_about: Factual description of the skill.
        static_findings_assessment: Engine commentary on pre-scan findings.
        category: Functional category.
    """

    trust_status: TrustStatus
    intent: Intent
    recommendation: Recommendation
    risk_score: float
    confidence: float
    summary: str
    details: dict[str, CategoryEvidence] = field(default_factory=dict)
    skill_about: SkillAbout = field(default_factory=lambda: SkillAbout(purpose=""))
    static_findings_assessment: str = ""
    category: SkillCategory = SkillCategory.OTHER

    @classmethod
    def from_dict(cls, data: Any) -> ScanOutput:
        """Parse engine structured output.

        Raises:
            EngineOutputError: If any required field is missing or invalid.
        """
        if not isinstance(data, dict):
            raise EngineOutputError("scan output is not a JSON object")

        risk_score = _number(data, "risk_score", 0.0, 10.0)
        confidence = _number(data, "confidence", 0.0, 100.0)

        raw_details = _require(data, "details")
        if not isinstance(raw_details, dict):
            raise EngineOutputError("details must be an object")
        details = {name: _evidence(raw_details, name) for name in THREAT_CATEGORIES}

        about = _require(data, "skill_about")
        if not isinstance(about, dict):
            raise EngineOutputError("skill_about must be an object")

        return cls(
            trust_status=_enum(TrustStatus, data, "trust_status"),
            intent=_enum(Intent, data, "intent"),
            recommendation=_enum(Recommendation, data, "recommendation"),
            risk_score=risk_score,
            confidence=confidence,
            summary=_string(data, "summary"),
            details=details,
            skill_about=SkillAbout(
                purpose=_string(about, "purpose"),
                capabilities=_strings(about, "capabilities"),
                use_cases=_strings(about, "use_cases"),
                permissions_required=_strings(about, "permissions_required"),
                security_notes=_string(about, "security_notes"),
            ),
            static_findings_assessment=_string(data, "static_findings_assessment"),
            category=_enum(SkillCategory, data, "category"),
        )

    def details_dict(self) -> dict[str, Any]:
        return {name: evidence.to_dict() for name, evidence in self.details.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "trust_status": self.trust_status.value,
            "intent": self.intent.value,
            "recommendation": self.recommendation.value,
            "risk_score": self.risk_score,
            "confidence": self.confidence,
            "summary": self.summary,
            "details": self.details_dict(),
            "skill_about": self.skill_about.to_dict(),
            "static_findings_assessment": self.static_findings_assessment,
            "category": self.category.value,
        }


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise EngineOutputError(f"scan output is missing '{key}'")
    return data[key]


def _string(data: dict[str, Any], key: str) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise EngineOutputError(f"'{key}' must be a string")
    return value


def _strings(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = _require(data, key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise EngineOutputError(f"'{key}' must be a list of strings")
    return tuple(value)


def _number(data: dict[str, Any], key: str, low: float, high: float) -> float:
    value = _require(data, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EngineOutputError(f"'{key}' must be a number")
    if not low <= value <= high:
        raise EngineOutputError(f"'{key}' must be between {low:g} and {high:g}, got {value}")
    return float(value)


def _enum(enum_cls: type[Enum], data: dict[str, Any], key: str) -> Any:
    value = _require(data, key)
    try:
        return enum_cls(value)
    except ValueError:
        raise EngineOutputError(f"'{key}' has unknown value {value!r}") from None


def _evidence(details: dict[str, Any], name: str) -> CategoryEvidence:
    entry = details.get(name)
    if not isinstance(entry, dict) or not isinstance(entry.get("detected"), bool):
        raise EngineOutputError(f"details.{name} must have a boolean 'detected'")
    evidence = entry.get("evidence", [])
    if not isinstance(evidence, list):
        raise EngineOutputError(f"details.{name}.evidence must be a list")
    return CategoryEvidence(detected=entry["detected"], evidence=tuple(str(e) for e in evidence))
