"""Generic line-oriented rule engine.

Applies a rule table to every line of every file and returns the
findings ordered critical, then warning, then info. Within a tier the
order follows file, rule and line iteration, so the output is stable
for a given input. No I/O happens here.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pyxscan.core.cache import CachedFile
from pyxscan.core.rules.catalog import STATIC_RULES
from pyxscan.core.rules.models import (
    MAX_MATCH_LENGTH,
    RuleSeverity,
    SeveritySummary,
    StaticFinding,
    StaticRule,
    StaticRulesResult,
)


def summarize(findings: Iterable[StaticFinding]) -> SeveritySummary:
    counts = {s: 0 for s in RuleSeverity}
    for finding in findings:
        counts[finding.severity] += 1
    return SeveritySummary(
        critical=counts[RuleSeverity.CRITICAL],
        warning=counts[RuleSeverity.WARNING],
        info=counts[RuleSeverity.INFO],
    )


def scan_file(cached: CachedFile, rules: Sequence[StaticRule] = STATIC_RULES) -> list[StaticFinding]:
    """Run *rules* over one file, in rule order then line order."""
    findings: list[StaticFinding] = []
    lines = cached.content.split("\n")
    for rule in rules:
        if not rule.applies_to(cached.path):
            continue
        for number, line in enumerate(lines, start=1):
            if rule.pattern.search(line):
                findings.append(
                    StaticFinding(
                        rule_id=rule.rule_id,
                        severity=rule.severity,
                        category=rule.category,
                        message=rule.message,
                        file=cached.path,
                        line=number,
                        match=line.strip()[:MAX_MATCH_LENGTH],
                    )
                )
    return findings


def run_static_rules(
    files: Iterable[CachedFile],
    rules: Sequence[StaticRule] = STATIC_RULES,
) -> StaticRulesResult:
    """Apply the rule table to a set of files.

    Args:
        files: Files to scan, usually ``CodeCache.files``.
        rules: Rule table; defaults to the built-in catalog.

    Returns:
        Findings sorted by severity tier plus a per-tier summary.
    """
    findings: list[StaticFinding] = []
    for cached in files:
        findings.extend(scan_file(cached, rules))
    findings.sort(key=lambda f: f.severity.rank)
    return StaticRulesResult(
        findings=tuple(findings),
        summary=summarize(findings),
        rules_checked=len(rules),
    )
