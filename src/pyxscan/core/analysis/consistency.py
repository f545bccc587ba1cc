"""Cross-field consistency enforcement for scan verdicts.

Models are asked to keep score, intent and tiers aligned, but nothing
guarantees it. Every ``ScanOutput`` passes through ``enforce_consistency``
before it is final:

1. ``intent == malicious`` with ``risk_score < 7`` raises the score to 7.
2. ``recommendation`` and ``trust_status`` are re-derived from the score:

   ============  ================  ==============
   risk_score    recommendation    trust_status
   ============  ================  ==============
   < 4           safe              verified
   [4, 7)        caution           caution
   >= 7          danger            failed
   ============  ================  ==============

Each correction is logged. Enforcement is idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from pyxscan.core.analysis.models import Intent, Recommendation, ScanOutput, TrustStatus

logger = logging.getLogger(__name__)

# Tier boundaries on the 0-10 risk scale.
CAUTION_THRESHOLD: float = 4.0
DANGER_THRESHOLD: float = 7.0

# Minimum score for a malicious verdict.
MALICIOUS_FLOOR: float = DANGER_THRESHOLD


def tier_for_score(score: float) -> tuple[Recommendation, TrustStatus]:
    """Return the (recommendation, trust_status) pair for a risk score."""
    if score < CAUTION_THRESHOLD:
        return Recommendation.SAFE, TrustStatus.VERIFIED
    if score < DANGER_THRESHOLD:
        return Recommendation.CAUTION, TrustStatus.CAUTION
    return Recommendation.DANGER, TrustStatus.FAILED


def enforce_consistency(output: ScanOutput) -> ScanOutput:
    """Return a copy of *output* whose score, intent and tiers agree."""
    score = output.risk_score
    if output.intent is Intent.MALICIOUS and score < MALICIOUS_FLOOR:
        logger.warning(
            "Intent is malicious but risk_score=%s < %s; raising to %s",
            score, MALICIOUS_FLOOR, MALICIOUS_FLOOR,
        )
        score = MALICIOUS_FLOOR

    recommendation, trust_status = tier_for_score(score)
    if recommendation is not output.recommendation:
        logger.warning(
            "risk_score=%s implies recommendation=%s, model said %s; overriding",
            score, recommendation.value, output.recommendation.value,
        )
    if trust_status is not output.trust_status:
        logger.warning(
            "risk_score=%s implies trust_status=%s, model said %s; overriding",
            score, trust_status.value, output.trust_status.value,
        )

    return replace(
        output,
        risk_score=score,
        recommendation=recommendation,
        trust_status=trust_status,
    )
