"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without polluting the
  CLI.
- Lets adapters (HTTP prober, environment signals) read config consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import NetworkHint
from core.domain.thresholds import CAPTIVE_STALL_MS, LONG_TASK_MS, PROBE_TIMEOUT_MS


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "network-medic"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "network-medic"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "network-medic"
    return Path.home() / ".config" / "network-medic"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Central application configuration.

    Why pydantic-settings:
    - Typing + validation at the edge (env vars) without leaking into the core.
    - One configuration contract shared by the CLI, the prober and the session.
    """

    model_config = SettingsConfigDict(
        env_prefix="NETWORK_MEDIC_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the per-user config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    probing_enabled: bool = Field(
        default=False,
        description="Opt-in to outbound reachability probes. Off means no network activity at all.",
    )
    ab_enabled: bool = Field(
        default=True,
        description="Offer a second 'after reset' scan to compare against the baseline.",
    )

    probe_timeout_ms: int = Field(
        default=PROBE_TIMEOUT_MS,
        gt=0,
        le=60_000,
        description="Per-probe timeout (milliseconds), shared by every endpoint.",
    )
    captive_stall_ms: int = Field(
        default=CAPTIVE_STALL_MS,
        gt=0,
        description="A captive probe slower than this counts as an anomaly.",
    )
    progress_tick_ms: int = Field(
        default=950,
        gt=0,
        description="Advisory progress counter interval.",
    )
    busy_sample_ms: int = Field(
        default=LONG_TASK_MS,
        gt=0,
        description="Sampling interval of the event-loop lag (device busy) monitor.",
    )

    user_agent: str = Field(
        default="network-medic/0.1 (+https://local)",
        min_length=1,
        description="User-Agent sent with probes.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI (DEBUG, INFO, WARNING, ERROR).",
    )

    # Optional connection-type hint. There is no portable OS API for this, so
    # it is only "supported" when the user provides it.
    network_type: str | None = Field(default=None, description="e.g. '4g', '3g', 'wifi'.")
    downlink_mbps: float | None = Field(default=None, ge=0)
    rtt_ms: int | None = Field(default=None, ge=0)
    save_data: bool | None = Field(default=None)

    def network_hint(self) -> NetworkHint:
        if not self.network_type:
            return NetworkHint(supported=False)
        return NetworkHint(
            supported=True,
            effective_type=self.network_type,
            downlink_mbps=self.downlink_mbps,
            rtt_ms=self.rtt_ms,
            save_data=self.save_data,
        )
