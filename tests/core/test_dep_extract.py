"""Tests for package manifest dependency extraction."""

from __future__ import annotations

import json

from pyxscan.core.cache import CachedFile
from pyxscan.core.deps.extract import extract_dependencies, is_resolvable, strip_range


class TestStripRange:
    """Semver range operator removal."""

    def test_operators(self) -> None:
        """Leading range operators are removed."""
        assert strip_range("^4.17.1") == "4.17.1"
        assert strip_range("~1.2.3") == "1.2.3"
        assert strip_range(">=2.0.0") == "2.0.0"

    def test_compound_range_keeps_first_token(self) -> None:
        """Only the first version of a compound range is kept."""
        assert strip_range(">=1.0.0 <2.0.0") == "1.0.0"


class TestResolvable:
    """References that cannot be looked up are skipped."""

    def test_unresolvable(self) -> None:
        """Workspace, git, file, link, URL and wildcard references."""
        for raw in ("", "*", "workspace:*", "git+https://x/y.git", "file:../lib", "link:../a",
                    "https://x/y.tgz", "npm:other@1"):
            assert not is_resolvable(raw), raw

    def test_resolvable(self) -> None:
        """Plain versions and ranges are looked up."""
        assert is_resolvable("^1.0.0")
        assert is_resolvable("2.3.4")


class TestExtractDependencies:
    """Reading package.json files from a file set."""

    def test_merges_sections(self) -> None:
        """dependencies and devDependencies are merged; bad entries skipped."""
        manifest = {
            "dependencies": {"express": "^4.17.1", "local": "file:../local"},
            "devDependencies": {"jest": "~29.0.0", "any": "*"},
        }
        deps = extract_dependencies([
            CachedFile("package.json", json.dumps(manifest)),
            CachedFile("index.js", "require('express')"),
        ])
        assert [(d.name, d.version) for d in deps] == [("express", "4.17.1"), ("jest", "29.0.0")]
        assert all(d.manifest == "package.json" for d in deps)

    def test_nested_manifests(self) -> None:
        """Every package.json in the set is read."""
        deps = extract_dependencies([
            CachedFile("a/package.json", json.dumps({"dependencies": {"lodash": "4.17.20"}})),
            CachedFile("b/package.json", json.dumps({"dependencies": {"axios": "^0.21.0"}})),
        ])
        assert {d.name for d in deps} == {"lodash", "axios"}

    def test_invalid_json_is_skipped(self) -> None:
        """An unparseable manifest contributes nothing."""
        assert extract_dependencies([CachedFile("package.json", "{not json")]) == []
