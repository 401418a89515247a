"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.environment import has_default_route
from adapters.http_prober import HttpProber
from cli.ui_components import build_endpoints_table
from core.config import AppSettings, get_user_env_file
from core.domain.endpoints import endpoint_for
from core.domain.models import EndpointRole, ProbeOutcome
from core.services.probe_executor import ProbeExecutor

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_probe(settings: AppSettings) -> ProbeOutcome:
    executor = ProbeExecutor(HttpProber(settings), timeout_ms=settings.probe_timeout_ms)
    return await executor.run_probe(endpoint_for(EndpointRole.PRIMARY_A))


@app.command()
def run() -> None:
    """Run baseline environment checks and show the effective configuration."""

    settings = AppSettings()

    table = Table(title="Network Medic Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    env_file = get_user_env_file()
    table.add_row("User config", "OK" if env_file.exists() else "OPTIONAL", str(env_file))
    if settings.probing_enabled:
        table.add_row("External probes", "ON", "Opted in via NETWORK_MEDIC_PROBING_ENABLED")
    else:
        table.add_row("External probes", "OFF", "Privacy Mode (pass --probe to `scan` to opt in)")
    table.add_row("A/B mode", "ON" if settings.ab_enabled else "OFF", "Baseline vs after-reset comparison")
    table.add_row("Probe timeout", "OK", f"{settings.probe_timeout_ms} ms per probe")

    hint = settings.network_hint()
    if hint.supported:
        table.add_row("Network hint", "OK", f"type={hint.effective_type} rtt={hint.rtt_ms} downlink={hint.downlink_mbps}")
    else:
        table.add_row("Network hint", "OPTIONAL", "Set NETWORK_MEDIC_NETWORK_TYPE to raise confidence")

    # Connectivity (best-effort, no packets for the route check)
    online = has_default_route()
    table.add_row("Default route", "OK" if online else "FAIL", "OS has a route to the internet" if online else "No route")

    if settings.probing_enabled:
        outcome = asyncio.run(_check_probe(settings))
        if outcome.completed:
            table.add_row("HTTP reachability", "OK", f"{outcome.endpoint_key} in {outcome.elapsed_ms} ms")
        else:
            detail = outcome.error_kind.value if outcome.error_kind else "failed"
            table.add_row("HTTP reachability", "FAIL", f"{outcome.endpoint_key}: {detail}")
    else:
        table.add_row("HTTP reachability", "SKIPPED", "External probes are OFF")

    _console.print(table)
    _console.print(build_endpoints_table())
