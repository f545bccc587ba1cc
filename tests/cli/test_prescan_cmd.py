"""Tests for ``pyxscan prescan``."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from pyxscan.cli.main import cli


def _skill(tmp_path: Path, code: str) -> Path:
    (tmp_path / "SKILL.md").write_text("# Demo\nFormats dates.\n", encoding="utf-8")
    (tmp_path / "index.js").write_text(code, encoding="utf-8")
    return tmp_path


class TestPrescanCommand:
    def test_clean_directory(self, tmp_path: Path) -> None:
        """Clean code exits 0."""
        path = _skill(tmp_path, "module.exports = (d) => d.toISOString();\n")
        result = CliRunner().invoke(cli, ["prescan", str(path), "--offline"])
        assert result.exit_code == 0, result.output
        assert "2 file(s) scanned" in result.output

    def test_json_output(self, tmp_path: Path) -> None:
        """JSON output carries findings and the offline dependency result."""
        path = _skill(tmp_path, "const out = " + "ev" + "al(input);\n")
        result = CliRunner().invoke(cli, ["prescan", str(path), "--offline", "--format", "json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["files_scanned"] == 2
        assert data["static"]["summary"]["critical"] == 1
        assert data["static"]["findings"][0]["rule_id"] == "EXEC-001"
        assert data["static"]["findings"][0]["file"] == "index.js"
        assert data["dependencies"] == {"vulnerabilities": [], "scanned_packages": 0, "error": None}

    def test_missing_path(self, tmp_path: Path) -> None:
        """Nonexistent paths are a usage error."""
        result = CliRunner().invoke(cli, ["prescan", str(tmp_path / "nope")])
        assert result.exit_code == 2
