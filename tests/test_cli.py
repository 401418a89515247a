"""Tests for cli/main.py and adapters/json_exporter.py — privacy-mode runs only."""
import asyncio
import json

from typer.testing import CliRunner

from conftest import FakeEnvironment, FakeProber
from adapters.json_exporter import export_report_json
from cli.main import app
from core.services.probe_executor import ProbeExecutor
from core.services.scan_session import ScanOrchestrator

runner = CliRunner()


class TestScanCommand:
    def test_no_probe_json(self, monkeypatch):
        monkeypatch.setenv("NETWORK_MEDIC_LOG_LEVEL", "ERROR")
        result = runner.invoke(app, ["scan", "--no-probe", "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["suggestion"]["label"] == "Limited Scan"
        assert payload["confidence"]["level"] == "low"
        assert payload["session"]["phase"] == "complete"
        assert payload["session"]["baseline"]["outcomes"] == []

    def test_export_json(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NETWORK_MEDIC_LOG_LEVEL", "ERROR")
        target = tmp_path / "reports" / "scan.json"
        result = runner.invoke(app, ["scan", "--no-probe", "--json", "--export-json", str(target)])
        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text(encoding="utf-8"))["suggestion"]["label"] == "Limited Scan"


class TestEndpointsCommand:
    def test_lists_endpoints(self):
        result = runner.invoke(app, ["endpoints"])
        assert result.exit_code == 0
        assert "Probe Endpoints" in result.stdout


class TestExporter:
    def test_creates_parent_dirs(self, tmp_path, settings):
        orch = ScanOrchestrator(ProbeExecutor(FakeProber()), FakeEnvironment(), settings=settings)
        asyncio.run(orch.start())
        path = export_report_json(report=orch.report(), output_path=tmp_path / "a" / "b.json")
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8"))["session"]["phase"] == "baseline-ready"


class TestDoctorCommand:
    def test_runs_without_probes(self, monkeypatch):
        monkeypatch.setenv("NETWORK_MEDIC_PROBING_ENABLED", "false")
        monkeypatch.setattr("cli.doctor.has_default_route", lambda: True)
        result = runner.invoke(app, ["doctor", "run"])
        assert result.exit_code == 0, result.output
        assert "SKIPPED" in result.stdout
