from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from cli.app import app
from conftest import ScriptedTransport, error, ok

FAST = ["--min-interval-ms", "0", "--retry-delay-ms", "0"]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: ScriptedTransport) -> dict:
    seen: dict = {}

    def factory(base_url, timeout):
        seen["base_url"] = base_url
        seen["timeout"] = timeout
        return stub

    monkeypatch.setattr("cli.app.HttpxTransport", factory)
    monkeypatch.setattr("cli.app.configure_logging", lambda level=None: None)
    return seen


def test_aggregate_renders_report(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport(handler=lambda sn_list: ok(sn_list, power="2.00 kW"))
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["aggregate", "-n", "25", "--batch-size", "10", *FAST])

    assert result.exit_code == 0
    assert "devices: 25/25" in result.stdout
    assert "total_power: 50.00 kW" in result.stdout
    assert "batches: 3/3" in result.stdout
    assert "devices: 25\n" in result.stdout
    assert "SN-000: 2.00 kW [Online]" in result.stdout
    assert stub.closed is True


def test_aggregate_lists_failed_batches(monkeypatch, runner: CliRunner) -> None:
    def handler(sn_list):
        return error(404, "Not found") if "SN-010" in sn_list else ok(sn_list)

    stub = ScriptedTransport(handler=handler)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["aggregate", "-n", "25", *FAST])

    assert result.exit_code == 0
    assert "devices: 15/25" in result.stdout
    assert "Failed Batches" in result.stdout
    assert "batch 1: SN-010" in result.stdout


def test_aggregate_json_output(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport(handler=ok)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["aggregate", "-n", "12", "--batch-size", "5", "--json", *FAST])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["total"] == 12
    assert payload["batches_total"] == 3
    assert payload["stats"]["total_requests"] == 3
    assert payload["stats"]["total_devices"] == 12
    assert payload["failed_batches"] == []


def test_aggregate_rejects_oversized_batch(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport(handler=ok)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["aggregate", "--batch-size", "11", *FAST])

    assert result.exit_code == 1
    assert stub.calls == []


def test_aggregate_rejects_negative_interval(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport(handler=ok)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["aggregate", "-n", "5", "--min-interval-ms", "-1"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid configuration" in result.output
    assert stub.calls == []


def test_global_options_reach_transport(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport(handler=ok)
    seen = _install_stub(monkeypatch, stub)

    result = runner.invoke(
        app,
        ["--base-url", "http://grid.local:3000/", "--timeout", "5", "--token", "s3cret", "fetch", "SN-001"],
    )

    assert result.exit_code == 0
    assert seen == {"base_url": "http://grid.local:3000", "timeout": 5.0}


def test_fetch_prints_records(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport(handler=ok)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["fetch", "SN-001", "SN-002"])

    assert result.exit_code == 0
    assert "Devices (2)" in result.stdout
    assert "SN-002: 1.50 kW [Online]" in result.stdout
    assert stub.calls[0]["sn_list"] == ["SN-001", "SN-002"]


def test_fetch_failure_exits_non_zero(monkeypatch, runner: CliRunner) -> None:
    stub = ScriptedTransport([error(404, "Not found")])
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["fetch", "SN-404"])

    assert result.exit_code == 1
