"""JSON export of a diagnostic report.

Why JSON:
- Interoperability with other tooling (support tickets, scripts).
- Nothing is persisted unless the user explicitly asks for an export.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import DiagnosticReport


def report_to_json(report: DiagnosticReport) -> str:
    """Serialize `DiagnosticReport` to UTF-8 JSON with a stable layout."""

    payload = report.model_dump(mode="json")
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n"


def export_report_json(*, report: DiagnosticReport, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(report_to_json(report), encoding="utf-8")
    return output_path
