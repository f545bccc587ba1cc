"""Scan flows: GitHub repositories and ClawHub packages to result sink."""

from pyxscan.pipeline.clawhub_flow import ClawHubSkillScanner
from pyxscan.pipeline.github_flow import GitHubRepoScanner
from pyxscan.pipeline.report import ScanReport, SkillOutcome, SkillStatus
from pyxscan.pipeline.sink import ApiResultSink, DedupIndex, DryRunSink, ResultSink

__all__ = [
    "ApiResultSink",
    "ClawHubSkillScanner",
    "DedupIndex",
    "DryRunSink",
    "GitHubRepoScanner",
    "ResultSink",
    "ScanReport",
    "SkillOutcome",
    "SkillStatus",
]
