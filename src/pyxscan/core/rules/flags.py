"""Broad pattern flags recorded alongside static findings.

Unlike the static rule table, this pass reports every occurrence on a
line and casts a wider net (reverse shells, keyloggers, HTTP clients).
Its output is stored with the scan result for reviewers; it is not fed
to the analysis prompt. Markdown other than SKILL.md is skipped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pyxscan.core.cache import CachedFile
from pyxscan.core.rules.engine import summarize
from pyxscan.core.rules.models import RuleSeverity, SeveritySummary, StaticFinding, StaticRule

_EVAL = "ev" + "al"

_C = RuleSeverity.CRITICAL
_W = RuleSeverity.WARNING
_I = RuleSeverity.INFO

FLAG_RULES: tuple[StaticRule, ...] = (
    StaticRule(
        "CLOUD_METADATA", _C, "secret_access", "Cloud metadata endpoint access",
        re.compile(r"169\.254\.169\.254|metadata\.google\.internal"),
    ),
    StaticRule(
        "REVERSE_SHELL", _C, "destructive_commands", "Potential reverse shell",
        re.compile(r"bash\s+-i|nc\s+-e|/dev/tcp"),
    ),
    StaticRule(
        "KEYLOGGER", _C, "excessive_permissions", "Keylogger or screen capture pattern",
        re.compile(r"keylog|screenshot|screen\.capture", re.IGNORECASE),
    ),
    StaticRule(
        "EVAL_FUNCTION", _W, "obfuscation", "Dynamic code evaluation",
        re.compile(rf"\b{_EVAL}\s*\(|new\s+Function\s*\(|\bFunction\s*\("),
    ),
    StaticRule(
        "SHELL_EXEC", _W, "excessive_permissions", "Shell command execution",
        re.compile(r"\bexec\s*\(|\bexecSync\s*\(|\bspawn\s*\("),
    ),
    StaticRule(
        "SUSPICIOUS_SCRIPTS", _W, "obfuscation", "Suspicious npm lifecycle script",
        re.compile(r"\"(?:postinstall|preinstall)\"\s*:\s*\"[^\"]*(?:sh |bash |node |curl |wget )"),
    ),
    StaticRule(
        "ENV_READ", _W, "secret_access", "Environment file reading",
        re.compile(r"readFile.*\.env|dotenv"),
    ),
    StaticRule(
        "HEX_OBFUSCATION", _W, "obfuscation", "Obfuscated hex string sequences",
        re.compile(r"(?:\\x[0-9a-fA-F]{2}){4,}"),
    ),
    StaticRule(
        "DYNAMIC_IMPORT", _W, "obfuscation", "Dynamic import with variable URL",
        re.compile(r"import\s*\(\s*[^\"'`\s)]"),
    ),
    StaticRule(
        "HTTP_REQUEST", _I, "data_exfiltration", "HTTP request capability",
        re.compile(r"\bfetch\s*\(|require\s*\(\s*['\"]axios['\"]\)|require\s*\(\s*['\"]node-fetch['\"]\)"),
    ),
    StaticRule(
        "FS_ACCESS", _I, "excessive_permissions", "File system access",
        re.compile(r"\breadFile\b|\bwriteFile\b|\bunlink\b"),
    ),
)


@dataclass(frozen=True)
class PreScanFlags:
    flags: tuple[StaticFinding, ...] = field(default_factory=tuple)
    summary: SeveritySummary = field(default_factory=SeveritySummary)

    def to_list(self) -> list[dict[str, Any]]:
        return [f.to_dict() for f in self.flags]


def _skipped(path: str) -> bool:
    return path.endswith(".md") and not path.endswith("SKILL.md")


def run_pre_scan_flags(files: Iterable[CachedFile]) -> PreScanFlags:
    """Report every flag-rule occurrence, in file, rule, line order."""
    flags: list[StaticFinding] = []
    for cached in files:
        if _skipped(cached.path):
            continue
        lines = cached.content.split("\n")
        for rule in FLAG_RULES:
            for number, line in enumerate(lines, start=1):
                for match in rule.pattern.finditer(line):
                    flags.append(
                        StaticFinding(
                            rule_id=rule.rule_id,
                            severity=rule.severity,
                            category=rule.category,
                            message=rule.message,
                            file=cached.path,
                            line=number,
                            match=match.group(0),
                        )
                    )
    return PreScanFlags(flags=tuple(flags), summary=summarize(flags))
