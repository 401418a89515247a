"""Load-bearing diagnostic thresholds.

Every classifier (latency tier, health rules, suggestions) reads these
values from here. Changing one changes diagnosis behaviour everywhere.
"""

from __future__ import annotations

PROBE_TIMEOUT_MS = 2500

LATENCY_ELEVATED_MS = 450
LATENCY_SEVERE_MS = 900

CAPTIVE_STALL_MS = 1800

# A/B comparison: improvement/regression must exceed this to count.
SIGNIFICANT_DELTA_MS = 250

DEVICE_BUSY_MS = 1500

# Event-loop stalls shorter than this are not counted as "busy" time.
LONG_TASK_MS = 50
