"""Dependency vulnerability scanning (npm manifests against OSV)."""

from pyxscan.core.deps.extract import extract_dependencies, is_resolvable, strip_range
from pyxscan.core.deps.models import (
    DepScanResult,
    DepVulnerability,
    PackageDependency,
    VulnSeverity,
)
from pyxscan.core.deps.osv import OsvScanner, run_dep_scan

__all__ = [
    "DepScanResult",
    "DepVulnerability",
    "OsvScanner",
    "PackageDependency",
    "VulnSeverity",
    "extract_dependencies",
    "is_resolvable",
    "run_dep_scan",
    "strip_range",
]
