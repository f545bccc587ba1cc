"""Deterministic static rule engine and its fixed rule table."""

from pyxscan.core.rules.catalog import STATIC_RULES
from pyxscan.core.rules.engine import run_static_rules, scan_file, summarize
from pyxscan.core.rules.flags import FLAG_RULES, PreScanFlags, run_pre_scan_flags
from pyxscan.core.rules.models import (
    RuleSeverity,
    SeveritySummary,
    StaticFinding,
    StaticRule,
    StaticRulesResult,
)

__all__ = [
    "FLAG_RULES",
    "STATIC_RULES",
    "PreScanFlags",
    "RuleSeverity",
    "SeveritySummary",
    "StaticFinding",
    "StaticRule",
    "StaticRulesResult",
    "run_pre_scan_flags",
    "run_static_rules",
    "scan_file",
    "summarize",
]
