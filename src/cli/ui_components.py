"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets `scan` and `doctor` reuse the same tables/panels.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.endpoints import DEFAULT_ENDPOINTS
from core.domain.models import (
    Comparison,
    ConfidenceScore,
    DiagnosticReport,
    Endpoint,
    ScanResult,
    Severity,
    Suggestion,
)
from core.services.comparison import format_delta_ms

_SEVERITY_STYLE: dict[Severity, str] = {
    Severity.GREEN: "green",
    Severity.AMBER: "yellow",
    Severity.RED: "red",
}


def print_banner(console: Console) -> None:
    """Print the welcome banner.

    Why here:
    - Avoids circular imports (main <-> doctor).
    - Can be skipped in non-interactive modes (JSON/pipelines).
    """

    title = Text("Network Medic", style="bold cyan")
    subtitle = Text("Signal bars but no internet? Let’s diagnose your connection.", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _ms(value: int | None) -> str:
    return "-" if value is None else f"{value} ms"


def build_diagnosis_panel(report: DiagnosticReport) -> Panel:
    diagnosis = report.diagnosis
    if diagnosis is None:
        return Panel(Text("Run a scan to generate results.", style="dim"), title="Diagnosis", border_style="white")

    style = _SEVERITY_STYLE[diagnosis.severity]
    body = Text()
    body.append(f"{diagnosis.title}\n", style=f"bold {style}")
    body.append(diagnosis.detail + "\n")
    latest = report.session.latest
    if latest is not None:
        body.append(f"\nBest latency: {_ms(latest.latency.best_ms)}", style="dim")
        body.append(f"  •  Worst: {_ms(latest.latency.worst_ms)}", style="dim")
        body.append(f"\n{latest.latency.note}", style="dim")
    return Panel(body, title=Text(diagnosis.label, style=f"bold {style}"), border_style=style)


def build_probes_table(result: ScanResult) -> Table:
    table = Table(title=f"Probes: {result.label.display()}")
    table.add_column("Endpoint", style="cyan", no_wrap=True)
    table.add_column("Role", style="white")
    table.add_column("Completed", style="green")
    table.add_column("Elapsed", justify="right")
    table.add_column("Transparency", style="magenta")
    table.add_column("Error", style="red")

    outcomes = list(result.outcomes)
    if result.resolution is not None:
        outcomes.append(result.resolution)
    for outcome in outcomes:
        table.add_row(
            outcome.endpoint_key,
            outcome.role.value,
            "yes" if outcome.completed else "no",
            _ms(outcome.elapsed_ms),
            outcome.transparency.value,
            outcome.error_kind.value if outcome.error_kind else "",
        )
    return table


def build_verdicts_table(result: ScanResult) -> Table:
    table = Table(title="Verdicts", show_header=True)
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Result", style="white")
    table.add_column("Details", style="dim")
    table.add_row("DNS ok", result.dns.ok.label(), result.dns.note)
    table.add_row("Captive portal", result.captive.suspected.label(), result.captive.note)
    tier = result.latency.tier.value if result.latency.tier else "-"
    table.add_row("Latency tier", tier, result.latency.note)
    if result.busy_ms is not None:
        table.add_row("Device busy", _ms(result.busy_ms), "Event-loop stalls during the scan")
    return table


def build_comparison_table(comparison: Comparison, baseline: ScanResult, after: ScanResult) -> Table:
    table = Table(title="Baseline vs After Reset")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Baseline", justify="right")
    table.add_column("After", justify="right")
    table.add_column("Change", style="magenta")

    table.add_row(
        "Best latency",
        _ms(baseline.latency.best_ms),
        _ms(after.latency.best_ms),
        format_delta_ms(comparison.latency_delta_ms),
    )
    table.add_row(
        "DNS ok",
        baseline.dns.ok.label(),
        after.dns.ok.label(),
        _changed(comparison.dns_changed),
    )
    table.add_row(
        "Captive suspected",
        baseline.captive.suspected.label(),
        after.captive.suspected.label(),
        _changed(comparison.captive_changed),
    )
    return table


def _changed(value: bool | None) -> str:
    if value is None:
        return "-"
    return "changed" if value else "same"


def build_suggestion_panel(suggestion: Suggestion, confidence: ConfidenceScore) -> Panel:
    body = Text()
    body.append(suggestion.reason.strip() + "\n")
    if suggestion.bullets:
        body.append("\nNext steps:\n", style="bold")
        for bullet in suggestion.bullets:
            body.append(f"- {bullet}\n")
    body.append(f"\nConfidence: {confidence.label}", style="bold")
    body.append(f"\n{confidence.note}", style="dim")
    return Panel(body, title=Text(suggestion.label, style="bold yellow"), border_style="yellow")


def build_endpoints_table(endpoints: tuple[Endpoint, ...] = DEFAULT_ENDPOINTS) -> Table:
    table = Table(title="Probe Endpoints")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Role", style="white")
    table.add_column("Domain evidence", style="green")
    table.add_column("Mode", style="magenta")
    table.add_column("URL", style="dim")
    for endpoint in endpoints:
        table.add_row(
            endpoint.key,
            endpoint.role.value,
            "yes" if endpoint.domain_bearing else "no",
            "observe" if endpoint.observe else "opaque",
            endpoint.url,
        )
    return table


def render_report(console: Console, report: DiagnosticReport) -> None:
    console.print(build_diagnosis_panel(report))

    session = report.session
    for result in (session.baseline, session.after):
        if result is None or not result.probing_enabled:
            continue
        console.print(Group(build_probes_table(result), build_verdicts_table(result)))

    if report.comparison is not None and session.baseline is not None and session.after is not None:
        console.print(build_comparison_table(report.comparison, session.baseline, session.after))

    console.print(build_suggestion_panel(report.suggestion, report.confidence))
