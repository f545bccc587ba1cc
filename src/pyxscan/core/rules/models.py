"""Data models for the static rule engine.

Rules are declarative rows (id, severity, category, message, pattern,
optional file filter). Findings record exactly where a rule matched so
that the AI analysis and human reviewers can verify them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RuleSeverity(str, Enum):
    """Severity tier of a static rule, ordered critical first."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort key: 0 for critical, 1 for warning, 2 for info."""
        return _RANKS[self]


_RANKS: dict[RuleSeverity, int] = {
    RuleSeverity.CRITICAL: 0,
    RuleSeverity.WARNING: 1,
    RuleSeverity.INFO: 2,
}

# Longest excerpt stored in a finding.
MAX_MATCH_LENGTH = 200


@dataclass(frozen=True)
class StaticRule:
    """A single line-oriented detection rule.

    Attributes:
        rule_id: Stable identifier such as ``EXEC-001``.
        severity: Tier of the rule.
        category: Threat category the rule provides evidence for.
        message: Human-readable description of what was found.
        pattern: Regex tested against each line.
        file_filter: Optional regex a file path must match for the rule
            to apply.
    """

    rule_id: str
    severity: RuleSeverity
    category: str
    message: str
    pattern: re.Pattern[str]
    file_filter: re.Pattern[str] | None = None

    def applies_to(self, path: str) -> bool:
        return self.file_filter is None or self.file_filter.search(path) is not None


@dataclass(frozen=True)
class StaticFinding:
    """One rule match on one line of one file."""

    rule_id: str
    severity: RuleSeverity
    category: str
    message: str
    file: str
    line: int
    match: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "match": self.match,
        }


@dataclass(frozen=True)
class SeveritySummary:
    """Finding counts per severity."""

    critical: int = 0
    warning: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.warning + self.info

    def to_dict(self) -> dict[str, int]:
        return {
            "critical": self.critical,
            "warning": self.warning,
            "info": self.info,
            "total": self.total,
        }


@dataclass(frozen=True)
class StaticRulesResult:
    """Output of a static rule run: ordered findings plus counts."""

    findings: tuple[StaticFinding, ...] = field(default_factory=tuple)
    summary: SeveritySummary = field(default_factory=SeveritySummary)
    rules_checked: int = 0

    @property
    def has_critical(self) -> bool:
        return self.summary.critical > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "summary": self.summary.to_dict(),
        }
