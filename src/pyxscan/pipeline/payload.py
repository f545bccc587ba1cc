"""Submission payloads for the result sink.

Static findings and registry scan verdicts are folded into the
``details`` object next to the per-category evidence, matching what the
scanner API stores.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pyxscan.core.analysis.models import ScanOutput
from pyxscan.pipeline.prescan import PreScanBundle
from pyxscan.sources.clawhub import ClawHubSkillDetail
from pyxscan.sources.github import RepoMetadata

_SCAN_STATUS = {"clean": "clean", "suspicious": "suspicious", "malicious": "malware"}


def map_scan_status(status: Any) -> str:
    return _SCAN_STATUS.get(status, "unknown")


def _iso_from_millis(value: Any, default: str) -> str:
    if isinstance(value, (int, float)) and value:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
    return default


def build_external_scans(detail: ClawHubSkillDetail, now: datetime | None = None) -> dict[str, Any] | None:
    """Summarize VirusTotal and OpenClaw verdicts for a ClawHub package.

    Returns None when the registry provided neither security data nor
    moderation flags.
    """
    security = detail.security
    if security is None and detail.moderation is None:
        return None

    fetched_at = (now or datetime.now(timezone.utc)).isoformat()
    vt = security.vt_analysis if security else None
    llm = security.llm_analysis if security else None

    vt_report_url: str | None = detail.url
    vt_checked_at: str | None = fetched_at
    vt_verdict: str | None = None
    if vt:
        vt_status = map_scan_status(vt.get("status"))
        vt_verdict = vt.get("analysis") or vt.get("verdict")
        vt_checked_at = _iso_from_millis(vt.get("checkedAt"), fetched_at)
        if security and security.sha256hash:
            vt_report_url = f"https://www.virustotal.com/gui/file/{security.sha256hash}"
    elif detail.moderation is not None:
        if detail.moderation.is_malware_blocked:
            vt_status, vt_verdict = "malware", "Malware blocked"
        elif detail.moderation.is_suspicious:
            vt_status, vt_verdict = "suspicious", "Suspicious activity flagged"
        else:
            vt_status, vt_verdict = "clean", "No threats detected"
    else:
        vt_status = "not_available"

    oc_status = "not_available"
    oc_verdict = oc_confidence = oc_checked_at = None
    if llm:
        oc_status = map_scan_status(llm.get("status"))
        oc_verdict = llm.get("summary") or llm.get("verdict")
        oc_confidence = llm.get("confidence")
        oc_checked_at = _iso_from_millis(llm.get("checkedAt"), fetched_at)

    vt_confidence = {"malware": "high", "suspicious": "medium", "clean": "high"}.get(vt_status)
    return {
        "providers": [
            {
                "provider": "VirusTotal",
                "status": vt_status,
                "verdict": vt_verdict,
                "confidence": vt_confidence,
                "report_url": vt_report_url,
                "checked_at": vt_checked_at,
            },
            {
                "provider": "OpenClaw",
                "status": oc_status,
                "verdict": oc_verdict,
                "confidence": oc_confidence,
                "report_url": detail.url,
                "checked_at": oc_checked_at,
            },
        ],
        "fetched_at": fetched_at,
    }


def enriched_details(
    output: ScanOutput,
    bundle: PreScanBundle | None,
    external_scans: dict[str, Any] | None = None,
) -> dict[str, Any]:
    details = output.details_dict()
    if bundle is not None:
        details["static_findings"] = [f.to_dict() for f in bundle.static.findings]
        details["static_summary"] = bundle.static.summary.to_dict()
        details["static_findings_assessment"] = output.static_findings_assessment
    if external_scans is not None:
        details["external_scans"] = external_scans
    return details


def _verdict_fields(output: ScanOutput, model: str) -> dict[str, Any]:
    return {
        "trust_status": output.trust_status.value,
        "recommendation": output.recommendation.value,
        "risk_score": output.risk_score,
        "summary": output.summary,
        "skill_about": output.skill_about.to_dict(),
        "confidence": output.confidence,
        "static_findings_assessment": output.static_findings_assessment,
        "intent": output.intent.value,
        "category": output.category.value,
        "model": model,
    }


def build_github_payload(
    *,
    owner: str,
    skill_name: str,
    repo: str,
    commit: str,
    output: ScanOutput,
    model: str,
    bundle: PreScanBundle | None,
    metadata: RepoMetadata | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "owner": owner,
        "name": skill_name,
        "repo": repo,
        "commit_hash": commit,
        "details": enriched_details(output, bundle),
        "dependency_vulnerabilities": (
            [v.to_dict() for v in bundle.deps.vulnerabilities] if bundle else None
        ),
        "pre_scan_flags": bundle.flags.to_list() if bundle and bundle.flags else None,
        **_verdict_fields(output, model),
    }
    if metadata is not None:
        payload["github_stars"] = metadata.stars
        payload["github_forks"] = metadata.forks
        payload["github_is_private"] = metadata.is_private
    return payload


def build_clawhub_payload(
    *,
    detail: ClawHubSkillDetail,
    output: ScanOutput,
    model: str,
    bundle: PreScanBundle | None,
    external_scans: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "owner": detail.owner.handle,
        "name": detail.name,
        "description": detail.description,
        "commit_hash": detail.latest_version,
        "version": detail.latest_version,
        "details": enriched_details(output, bundle, external_scans),
        "dependency_vulnerabilities": (
            [v.to_dict() for v in bundle.deps.vulnerabilities] if bundle else None
        ),
        **_verdict_fields(output, model),
        "source": "clawhub",
        "clawhub_slug": detail.slug,
        "clawhub_version": detail.latest_version,
        "clawhub_content_hash": detail.security.sha256hash if detail.security else None,
        "clawhub_downloads": detail.downloads,
        "clawhub_stars": detail.stars,
        "clawhub_url": detail.url,
    }
