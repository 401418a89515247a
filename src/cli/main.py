"""Network Medic CLI (Typer).

Why the CLI is thin:
- All diagnostic logic lives in `core.services`; commands only wire the
  adapters together, render with Rich and map errors to exit codes.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn

from adapters.environment import SystemEnvironment
from adapters.http_prober import HttpProber
from adapters.json_exporter import export_report_json, report_to_json
from cli.doctor import app as doctor_app
from cli.ui_components import build_endpoints_table, print_banner, render_report
from core.config import AppSettings
from core.domain.models import DiagnosticReport, ScanPhase
from core.errors import SessionStateError
from core.services.probe_executor import ProbeExecutor
from core.services.scan_session import ScanOrchestrator, SessionHooks

app = typer.Typer(
    no_args_is_help=True,
    help="Diagnose 'connected but not working' networks with privacy-first reachability probes.",
)
app.add_typer(doctor_app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)

RESET_PROMPT = (
    "Now toggle airplane mode ON, wait 10 seconds, then OFF (or reconnect to the network). "
    "Run the after-reset scan?"
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )


def build_orchestrator(settings: AppSettings, hooks: SessionHooks | None = None) -> ScanOrchestrator:
    executor = ProbeExecutor(HttpProber(settings), timeout_ms=settings.probe_timeout_ms)
    return ScanOrchestrator(executor, SystemEnvironment(settings), settings=settings, hooks=hooks)


class _ScanProgress:
    """Routes orchestrator progress hooks to a Rich progress bar."""

    def __init__(self, console: Console, *, enabled: bool) -> None:
        self._console = console
        self._enabled = enabled
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def update(self, step: int, total: int, label: str) -> None:
        if self._progress is None or self._task is None:
            return
        self._progress.update(self._task, completed=step, total=total, description=label)

    @contextmanager
    def phase(self, title: str) -> Iterator[None]:
        if not self._enabled:
            yield
            return
        with Progress(
            SpinnerColumn(),
            TextColumn(f"[bold cyan]{title}[/bold cyan]"),
            TextColumn("{task.description}"),
            BarColumn(),
            console=self._console,
            transient=True,
        ) as progress:
            self._progress = progress
            self._task = progress.add_task("Starting", total=1)
            try:
                yield
            finally:
                self._progress = None
                self._task = None


async def run_scan_flow(
    settings: AppSettings,
    *,
    confirm_reset: bool,
    progress: _ScanProgress,
) -> DiagnosticReport:
    orchestrator = build_orchestrator(settings, SessionHooks(progress=progress.update))

    with progress.phase("Baseline"):
        await orchestrator.start()

    if orchestrator.phase is ScanPhase.BASELINE_READY:
        proceed = typer.confirm(RESET_PROMPT, default=True) if confirm_reset else True
        if proceed:
            with progress.phase("After Reset"):
                await orchestrator.start_after()
        else:
            orchestrator.set_ab_mode(False)

    return orchestrator.report()


@app.command()
def scan(
    probe: bool | None = typer.Option(
        None,
        "--probe/--no-probe",
        help="Opt in to outbound reachability probes (default from NETWORK_MEDIC_PROBING_ENABLED, off).",
    ),
    ab: bool | None = typer.Option(
        None,
        "--ab/--no-ab",
        help="Offer a second scan after a network reset and compare both.",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not prompt before the after-reset scan."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON instead of tables."),
    export_json: Path | None = typer.Option(None, "--export-json", help="Also write the JSON report to this path."),
) -> None:
    """Run a diagnostic scan and print the verdict."""

    try:
        settings = AppSettings()
    except ValidationError as exc:
        _err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    overrides: dict[str, bool] = {}
    if probe is not None:
        overrides["probing_enabled"] = probe
    if ab is not None:
        overrides["ab_enabled"] = ab
    # JSON output owns stdout: no interactive prompt, single phase unless --yes.
    if as_json and not yes:
        overrides["ab_enabled"] = False
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(settings.log_level)

    if not as_json:
        print_banner(_console)
        if not settings.probing_enabled:
            _console.print(
                "[yellow]Privacy Mode:[/yellow] external probes are OFF. "
                "Re-run with [bold]--probe[/bold] to opt in."
            )

    progress = _ScanProgress(_console, enabled=not as_json)
    try:
        report = asyncio.run(run_scan_flow(settings, confirm_reset=not yes, progress=progress))
    except SessionStateError as exc:
        _err_console.print(f"[red]Scan aborted:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    if as_json:
        typer.echo(report_to_json(report), nl=False)
    else:
        render_report(_console, report)

    if export_json is not None:
        path = export_report_json(report=report, output_path=export_json)
        if not as_json:
            _console.print(f"[green]Report saved to:[/green] {path}")


@app.command()
def endpoints() -> None:
    """List the static probe endpoint table."""

    _console.print(build_endpoints_table())


def run() -> None:
    app()


if __name__ == "__main__":
    run()
