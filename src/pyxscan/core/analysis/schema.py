"""JSON schemas passed to the analysis engine for structured output."""

from __future__ import annotations

from typing import Any

from pyxscan.core.analysis.models import (
    THREAT_CATEGORIES,
    Intent,
    Recommendation,
    SkillCategory,
    TrustStatus,
)

_EVIDENCE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "detected": {"type": "boolean"},
        "evidence": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["detected", "evidence"],
}

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

SCAN_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "trust_status": {"type": "string", "enum": [t.value for t in TrustStatus]},
        "intent": {"type": "string", "enum": [i.value for i in Intent]},
        "recommendation": {"type": "string", "enum": [r.value for r in Recommendation]},
        "risk_score": {"type": "number", "minimum": 0, "maximum": 10},
        "confidence": {"type": "number", "minimum": 0, "maximum": 100},
        "summary": {"type": "string"},
        "details": {
            "type": "object",
            "properties": {name: _EVIDENCE_SCHEMA for name in THREAT_CATEGORIES},
            "required": list(THREAT_CATEGORIES),
        },
        "skill_about": {
            "type": "object",
            "properties": {
                "purpose": {"type": "string"},
                "capabilities": _STRING_LIST,
                "use_cases": _STRING_LIST,
                "permissions_required": _STRING_LIST,
                "security_notes": {"type": "string"},
            },
            "required": [
                "purpose", "capabilities", "use_cases",
                "permissions_required", "security_notes",
            ],
        },
        "static_findings_assessment": {"type": "string"},
        "category": {"type": "string", "enum": [c.value for c in SkillCategory]},
    },
    "required": [
        "trust_status", "intent", "recommendation", "risk_score", "confidence",
        "summary", "details", "skill_about", "static_findings_assessment", "category",
    ],
}

DISCOVERY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "skills": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "skill_name": {"type": "string"},
                    "description": {"type": "string"},
                    "relevant_files": _STRING_LIST,
                },
                "required": ["skill_name", "description", "relevant_files"],
            },
        },
    },
    "required": ["skills"],
}
