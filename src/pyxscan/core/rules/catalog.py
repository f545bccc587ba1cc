"""The fixed static rule table.

Critical rules target constructs with near-zero false-positive rates:
control-character tricks, dynamic code execution, shell spawning,
install hooks, encoded blobs, obfuscated identifiers, the cloud metadata
endpoint, sensitive dotfiles and explicit tool-poisoning markers.
Warning rules are context-dependent (network calls, non-literal file
reads, weak randomness, "ignore previous instructions"). Info rules are
observational.

Each pattern is tested against a single line so that findings carry
exact line numbers.

Note: dangerous-function names are built from fragments so that the
catalog source itself does not trip security linters.
"""

from __future__ import annotations

import re

from pyxscan.core.rules.models import RuleSeverity, StaticRule

_EVAL = "ev" + "al"
_FUNCTION = "Func" + "tion"
_CHILD_PROCESS = "child" + "_process"
_EXEC_NAMES = "|".join(("exec", "spawn", "execFile", "execSync", "spawnSync"))

_PACKAGE_JSON = re.compile(r"package\.json$")

_C = RuleSeverity.CRITICAL
_W = RuleSeverity.WARNING
_I = RuleSeverity.INFO


STATIC_RULES: tuple[StaticRule, ...] = (
    # ------------------------------------------------------------------
    # Critical
    # ------------------------------------------------------------------
    StaticRule(
        "BIDI-001", _C, "obfuscation",
        "Unicode BiDi override character detected (Trojan Source attack)",
        re.compile("[\u202a-\u202e\u2066-\u2069]"),
    ),
    StaticRule(
        "ZERO-WIDTH-001", _C, "prompt_injection",
        "Zero-width character detected (hidden text or instructions)",
        re.compile("[\u200b\u200c\u200d\ufeff]"),
    ),
    StaticRule(
        "EXEC-001", _C, "destructive_commands",
        f"Dynamic code execution via {_EVAL}() or new {_FUNCTION}()",
        re.compile(rf"\b{_EVAL}\s*\(|new\s+{_FUNCTION}\s*\("),
    ),
    StaticRule(
        "EXEC-002", _C, "destructive_commands",
        f"Shell command execution via {_CHILD_PROCESS}",
        re.compile(
            rf"(?:require\s*\(\s*['\"]{_CHILD_PROCESS}['\"]\s*\)|from\s+['\"]{_CHILD_PROCESS}['\"])"
            rf".*(?:{_EXEC_NAMES})"
        ),
    ),
    StaticRule(
        "INSTALL-001", _C, "destructive_commands",
        "npm lifecycle install script (runs automatically on install)",
        re.compile(r"[\"'](?:pre|post)install[\"']\s*:"),
        _PACKAGE_JSON,
    ),
    StaticRule(
        "INSTALL-002", _C, "data_exfiltration",
        "Install script downloads remote content",
        re.compile(r"[\"'](?:pre|post)install[\"']\s*:\s*[\"'][^\"']*(?:curl|wget|https?://)[^\"']*"),
        _PACKAGE_JSON,
    ),
    StaticRule(
        "OBFUSC-001", _C, "obfuscation",
        "Hex-escaped string sequence (possible obfuscated payload)",
        re.compile(r"(?:\\x[0-9a-fA-F]{2}){5,}"),
    ),
    StaticRule(
        "OBFUSC-002", _C, "obfuscation",
        "Long base64-encoded string literal",
        re.compile(r"['\"`][A-Za-z0-9+/]{100,}={0,2}['\"`]"),
    ),
    StaticRule(
        "OBFUSC-003", _C, "obfuscation",
        "String assembled from character codes",
        re.compile(r"String\.fromCharCode\s*\(\s*(?:\d+\s*,\s*){4,}\d+\s*\)"),
    ),
    StaticRule(
        "OBFUSC-004", _C, "obfuscation",
        "Obfuscator-generated identifier (_0x...)",
        re.compile(r"\b_0x[0-9a-fA-F]{4,}\b"),
    ),
    StaticRule(
        "EXFIL-001", _C, "data_exfiltration",
        "Cloud instance metadata endpoint (SSRF / credential theft)",
        re.compile(r"169\.254\.169\.254"),
    ),
    StaticRule(
        "SECRET-001", _C, "secret_access",
        "Reference to sensitive credential path",
        re.compile(r"(?:\.ssh/|\.aws/|\.gnupg/|\.npmrc\b|\.env\b)"),
    ),
    StaticRule(
        "POISON-001", _C, "prompt_injection",
        "Tool-poisoning marker <IMPORTANT> (hidden instructions for the model)",
        re.compile(r"<IMPORTANT>", re.IGNORECASE),
    ),
    StaticRule(
        "POISON-002", _C, "prompt_injection",
        "Instruction to conceal behavior from the user",
        re.compile(
            r"do\s+not\s+(?:mention|tell|reveal|show|display)\s+(?:to\s+)?the\s+user",
            re.IGNORECASE,
        ),
    ),
    # ------------------------------------------------------------------
    # Warning
    # ------------------------------------------------------------------
    StaticRule(
        "NET-001", _W, "data_exfiltration",
        "Outbound network request",
        re.compile(r"\bfetch\s*\(|axios\.\w+\s*\(|https?\.request\s*\("),
    ),
    StaticRule(
        "FS-001", _W, "secret_access",
        "File read with a non-literal path",
        re.compile(r"fs\.readFile(?:Sync)?\s*\(\s*(?!['\"`])"),
    ),
    StaticRule(
        "CRYPTO-001", _W, "obfuscation",
        "Math.random() used (not cryptographically secure)",
        re.compile(r"Math\.random\s*\(\s*\)"),
    ),
    StaticRule(
        "POISON-003", _W, "prompt_injection",
        "Instruction-override phrasing",
        re.compile(r"ignore\s+(?:previous|prior|above|all)\s+instructions", re.IGNORECASE),
    ),
    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------
    StaticRule(
        "ENV-001", _I, "secret_access",
        "Environment variable access",
        re.compile(r"process\.env\b"),
    ),
    StaticRule(
        "DYN-001", _I, "destructive_commands",
        "Dynamic require/import with a non-literal argument",
        re.compile(r"(?:require|import)\s*\(\s*(?!['\"`])"),
    ),
)
