"""Tests for prompt construction."""

from __future__ import annotations

from pyxscan.core.analysis.prompts import (
    build_analysis_prompt,
    build_pre_scan_context,
    build_scoped_analysis_prompt,
)
from pyxscan.core.deps.models import DepScanResult, DepVulnerability, VulnSeverity
from pyxscan.core.rules.models import (
    RuleSeverity,
    SeveritySummary,
    StaticFinding,
    StaticRulesResult,
)


def _finding() -> StaticFinding:
    return StaticFinding(
        rule_id="EXEC-001", severity=RuleSeverity.CRITICAL, category="destructive_commands",
        message="Dynamic code evaluation", file="index.js", line=3, match="ev" + "al(x)",
    )


def _vuln() -> DepVulnerability:
    return DepVulnerability(
        id="GHSA-1", package_name="express", installed_version="4.17.1",
        severity=VulnSeverity.HIGH, summary="bad", fixed_version=None,
        reference_url="https://osv.dev/vulnerability/GHSA-1",
    )


class TestPreScanContext:
    """Rendering of deterministic findings."""

    def test_tables(self) -> None:
        """Findings and advisories are rendered as markdown tables."""
        static = StaticRulesResult(
            findings=(_finding(),), summary=SeveritySummary(critical=1), rules_checked=20,
        )
        deps = DepScanResult(vulnerabilities=(_vuln(),), scanned_packages=4)
        context = build_pre_scan_context(static, deps)
        assert "1 critical, 0 warning, 0 info (1 total)" in context
        assert "| EXEC-001 | critical | index.js:3 | Dynamic code evaluation |" in context
        assert "| express | 4.17.1 | GHSA-1 | high | none |" in context
        assert "in 4 packages" in context

    def test_nothing_flagged(self) -> None:
        """Clean results say so explicitly and mention the dependency error."""
        context = build_pre_scan_context(
            StaticRulesResult(rules_checked=20),
            DepScanResult(error="OSV API unreachable"),
        )
        assert "No deterministic issues were flagged" in context
        assert "(20 rules checked)" in context
        assert "<dependency_vulnerabilities>" not in context
        assert "Dependency scan warning: OSV API unreachable" in context

    def test_clean_dependencies(self) -> None:
        """Scanned packages without advisories get a clean note."""
        context = build_pre_scan_context(StaticRulesResult(), DepScanResult(scanned_packages=3))
        assert "No known vulnerabilities found in 3 scanned packages." in context


class TestPrompts:
    """Analysis prompts."""

    def test_repository_prompt(self) -> None:
        """The code is wrapped and no pre-scan block appears without context."""
        prompt = build_analysis_prompt("acme", "tools", "--- a.js ---\nx")
        assert "**acme/tools**" in prompt
        assert "<source_code>\n--- a.js ---\nx\n</source_code>" in prompt
        assert "<pre_scan_data>" not in prompt

    def test_scoped_prompt(self) -> None:
        """The scoped prompt names the skill and its description."""
        prompt = build_scoped_analysis_prompt("acme", "tools", "fmt", "Formats dates", "code", "CTX")
        assert "**fmt**" in prompt
        assert "Skill description: Formats dates" in prompt
        assert "CTX" in prompt
