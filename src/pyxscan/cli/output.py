"""Rich output helpers for the pyxscan CLI.

Severity and verdict colors:
    critical / CRITICAL / failed  = bold red
    warning  / HIGH     / caution = yellow
    info     / MODERATE           = cyan
    LOW      / verified           = green
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from pyxscan.core.analysis.models import ScanOutput, TrustStatus
from pyxscan.core.deps.models import DepScanResult, VulnSeverity
from pyxscan.core.rules.models import RuleSeverity, StaticRulesResult
from pyxscan.pipeline.report import ScanReport, SkillStatus
from pyxscan.queue.consumer import DrainReport, JobResult

_RULE_STYLES: dict[RuleSeverity, str] = {
    RuleSeverity.CRITICAL: "bold red",
    RuleSeverity.WARNING: "yellow",
    RuleSeverity.INFO: "cyan",
}

_VULN_STYLES: dict[VulnSeverity, str] = {
    VulnSeverity.CRITICAL: "bold red",
    VulnSeverity.HIGH: "yellow",
    VulnSeverity.MODERATE: "cyan",
    VulnSeverity.LOW: "green",
}

_TRUST_STYLES: dict[TrustStatus, str] = {
    TrustStatus.VERIFIED: "bold green",
    TrustStatus.CAUTION: "yellow",
    TrustStatus.FAILED: "bold red",
}

_STATUS_STYLES: dict[str, str] = {
    SkillStatus.SUBMITTED.value: "green",
    SkillStatus.SKIPPED.value: "dim",
    SkillStatus.FAILED.value: "bold red",
    JobResult.COMPLETED.value: "green",
    JobResult.NOT_CLAIMED.value: "dim",
}

console = Console()


def print_static_result(result: StaticRulesResult) -> None:
    """Print static rule findings as a table, most severe first."""
    if not result.findings:
        console.print(f"[green]No static findings ({result.rules_checked} rules checked).[/green]")
        return

    table = Table(title="Static Findings", show_header=True, header_style="bold")
    table.add_column("Severity", justify="center")
    table.add_column("Rule", style="bold")
    table.add_column("Location", style="dim")
    table.add_column("Message")
    table.add_column("Match", style="dim")
    for f in result.findings:
        table.add_row(
            Text(f.severity.value.upper(), style=_RULE_STYLES.get(f.severity, "white")),
            f.rule_id,
            f"{f.file}:{f.line}",
            f.message,
            f.match[:80],
        )
    console.print(table)
    s = result.summary
    console.print(
        f"[bold red]{s.critical} critical[/bold red] | "
        f"[yellow]{s.warning} warning[/yellow] | [cyan]{s.info} info[/cyan]"
    )


def print_dep_scan(result: DepScanResult) -> None:
    """Print dependency advisories, or the reason the lookup degraded."""
    if result.error:
        console.print(f"[yellow]Dependency scan warning: {result.error}[/yellow]")
        return
    if not result.vulnerabilities:
        console.print(f"[green]No known vulnerabilities in {result.scanned_packages} package(s).[/green]")
        return

    table = Table(title="Dependency Vulnerabilities", show_header=True, header_style="bold")
    table.add_column("Severity", justify="center")
    table.add_column("Package", style="bold")
    table.add_column("Installed")
    table.add_column("Fixed In")
    table.add_column("Advisory", style="dim")
    for v in result.vulnerabilities:
        table.add_row(
            Text(v.severity.value, style=_VULN_STYLES.get(v.severity, "white")),
            v.package_name,
            v.installed_version,
            v.fixed_version or "-",
            v.id,
        )
    console.print(table)


def verdict_text(output: ScanOutput) -> Text:
    style = _TRUST_STYLES.get(output.trust_status, "white")
    return Text(f"{output.trust_status.value.upper()} {output.risk_score:.1f}", style=style)


def print_scan_report(report: ScanReport) -> None:
    """Print one row per skill with its outcome and verdict."""
    if report.skipped_reason:
        console.print(f"[dim]{report.target}: skipped ({report.skipped_reason}).[/dim]")
        return
    if not report.outcomes:
        console.print(f"[dim]{report.target}: no skills processed.[/dim]")
        return

    title = f"{report.target} @ {report.ref[:12]}" if report.ref else report.target
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Skill", style="bold")
    table.add_column("Outcome", justify="center")
    table.add_column("Verdict", justify="center")
    table.add_column("Intent")
    table.add_column("Detail")
    for o in report.outcomes:
        outcome = Text(o.status.value, style=_STATUS_STYLES.get(o.status.value, "white"))
        if o.output is not None:
            table.add_row(o.name, outcome, verdict_text(o.output), o.output.intent.value, o.output.summary[:80])
        else:
            table.add_row(o.name, outcome, "-", "-", (o.error or "")[:80])
    console.print(table)
    console.print(
        f"[green]{len(report.submitted)} submitted[/green] | "
        f"[dim]{len(report.skipped)} skipped[/dim] | "
        f"[red]{len(report.failed)} failed[/red]"
    )


def print_drain_report(report: DrainReport) -> None:
    """Print the outcome of each job handled by a drain cycle."""
    if report.reset:
        console.print(f"[yellow]Reset {report.reset} stale job(s) to queued.[/yellow]")
    if not report.outcomes:
        console.print("[dim]No queued scan jobs found.[/dim]")
        return

    table = Table(title="Queue Drain", show_header=True, header_style="bold")
    table.add_column("Job", style="dim")
    table.add_column("Target", style="bold")
    table.add_column("Result", justify="center")
    table.add_column("Error")
    for o in report.outcomes:
        result = Text(o.result.value, style=_STATUS_STYLES.get(o.result.value, "white"))
        table.add_row(o.job_id[:8], o.target, result, (o.error or "")[:80])
    console.print(table)
