"""Outcome records for scan flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pyxscan.core.analysis.models import ScanOutput


class SkillStatus(str, Enum):
    SUBMITTED = "submitted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class SkillOutcome:
    """What happened to one skill during a scan."""

    name: str
    status: SkillStatus
    output: ScanOutput | None = None
    error: str | None = None


@dataclass
class ScanReport:
    """Per-skill outcomes of one repository or package scan.

    Attributes:
        target: ``owner/repo`` or registry slug.
        ref: Commit SHA or package version that was scanned.
        outcomes: One entry per skill, in processing order.
        skipped_reason: Set when the whole target was skipped before any
            skill was considered (e.g. documentation-only).
    """

    target: str
    ref: str = ""
    outcomes: list[SkillOutcome] = field(default_factory=list)
    skipped_reason: str | None = None

    def add(self, outcome: SkillOutcome) -> None:
        self.outcomes.append(outcome)

    def _with(self, status: SkillStatus) -> list[SkillOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def submitted(self) -> list[SkillOutcome]:
        return self._with(SkillStatus.SUBMITTED)

    @property
    def skipped(self) -> list[SkillOutcome]:
        return self._with(SkillStatus.SKIPPED)

    @property
    def failed(self) -> list[SkillOutcome]:
        return self._with(SkillStatus.FAILED)

    @property
    def is_noop(self) -> bool:
        """True when nothing was analyzed (skipped target or all skills skipped)."""
        if self.skipped_reason is not None:
            return True
        return bool(self.outcomes) and len(self.skipped) == len(self.outcomes)

    def failure_message(self) -> str:
        names = ", ".join(f"{o.name} ({o.error})" for o in self.failed)
        return f"{len(self.failed)} of {len(self.outcomes)} skill(s) failed for {self.target}: {names}"
