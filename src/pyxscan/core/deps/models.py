"""Data models for the dependency vulnerability scan."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class VulnSeverity(str, Enum):
    """Advisory severity, ordered most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def from_score(cls, score: float | None) -> VulnSeverity:
        """Map a CVSS base score to a severity; no score means MODERATE."""
        if score is None:
            return cls.MODERATE
        if score >= 9.0:
            return cls.CRITICAL
        if score >= 7.0:
            return cls.HIGH
        if score >= 4.0:
            return cls.MODERATE
        return cls.LOW


_RANKS: dict[VulnSeverity, int] = {
    VulnSeverity.CRITICAL: 0,
    VulnSeverity.HIGH: 1,
    VulnSeverity.MODERATE: 2,
    VulnSeverity.LOW: 3,
}


@dataclass(frozen=True)
class PackageDependency:
    """A declared npm dependency with its range operators stripped."""

    name: str
    version: str
    manifest: str = ""


@dataclass(frozen=True)
class DepVulnerability:
    """A known advisory affecting one installed package version."""

    id: str
    package_name: str
    installed_version: str
    severity: VulnSeverity
    summary: str
    fixed_version: str | None
    reference_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "package_name": self.package_name,
            "installed_version": self.installed_version,
            "severity": self.severity.value,
            "summary": self.summary,
            "fixed_version": self.fixed_version,
            "reference_url": self.reference_url,
        }


@dataclass(frozen=True)
class DepScanResult:
    """Outcome of a dependency scan.

    A failed scan is still a result: ``error`` explains what went wrong
    and ``vulnerabilities`` is empty.
    """

    vulnerabilities: tuple[DepVulnerability, ...] = field(default_factory=tuple)
    scanned_packages: int = 0
    error: str | None = None

    def restricted_to(self, declared: set[tuple[str, str]]) -> DepScanResult:
        """Keep only advisories for the ``(package, version)`` pairs in *declared*.

        A package pinned at a safe version does not inherit an advisory
        raised for another manifest's vulnerable version of it.
        """
        return replace(
            self,
            vulnerabilities=tuple(
                v for v in self.vulnerabilities if (v.package_name, v.installed_version) in declared
            ),
            scanned_packages=len(declared),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "scanned_packages": self.scanned_packages,
            "error": self.error,
        }
