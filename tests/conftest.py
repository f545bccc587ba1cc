"""Shared fixtures for pyxscan tests."""

from __future__ import annotations

from typing import Any

import pytest

from pyxscan.config import get_settings
from pyxscan.core.analysis.models import THREAT_CATEGORIES


def scan_dict(**overrides: Any) -> dict[str, Any]:
    """A valid engine scan result; keyword arguments replace top-level fields."""
    data: dict[str, Any] = {
        "trust_status": "verified",
        "intent": "benign",
        "recommendation": "safe",
        "risk_score": 1.0,
        "confidence": 90,
        "summary": "Formats dates for the user.",
        "details": {name: {"detected": False, "evidence": []} for name in THREAT_CATEGORIES},
        "skill_about": {
            "purpose": "Formats dates.",
            "capabilities": ["date formatting"],
            "use_cases": ["reports"],
            "permissions_required": [],
            "security_notes": "No network access.",
        },
        "static_findings_assessment": "No static findings.",
        "category": "productivity",
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Isolate every test from the developer's environment and cached settings."""
    for var in ("PYX_ADMIN_API_KEY", "PYX_GITHUB_TOKEN", "GITHUB_TOKEN", "PYX_DATABASE_URL", "DATABASE_URL", "PYX_MODEL"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_scan() -> Any:
    """Factory for valid engine scan results."""
    return scan_dict
