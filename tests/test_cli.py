"""Smoke tests for the Typer-based rankings CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from rankings.cli.common import parse_override
from rankings.cli.main import app, run
from rankings.orchestration import RunResult, TruncationReport
from rankings.pipeline.metrics import IngestionSummary


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    env = {
        "RANKINGS_SETTINGS__PATHS__DATA_DIR": str(tmp_path / "data"),
        "RANKINGS_SETTINGS__PATHS__LOGS_DIR": str(tmp_path / "logs"),
        "SUPABASE_URL": "https://store.test",
        "SUPABASE_SERVICE_ROLE_KEY": "super-secret-key",
    }
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return env


class _StubOrchestrator:
    calls: list[tuple[str, object]] = []

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id

    @classmethod
    def from_settings(cls, settings, *, run_id=None):
        return cls(run_id or "generated")

    def run(self, **flags) -> RunResult:
        self.calls.append(("run", flags))
        stages = [name for name, key in (("high_schools", "skip_high_schools"), ("circuit_teams", "skip_circuit_teams"), ("players", "skip_players")) if not flags[key]]
        skipped = [name for name in ("high_schools", "circuit_teams", "players") if name not in stages]
        return RunResult(
            run_id=self.run_id,
            summaries={name: IngestionSummary(stage=name, pages_fetched=1) for name in stages},
            skipped=skipped,
        )

    def run_stage(self, name: str) -> IngestionSummary:
        self.calls.append(("run_stage", name))
        return IngestionSummary(stage=name, rows_parsed=3)


@pytest.fixture()
def stub_orchestrator(monkeypatch: pytest.MonkeyPatch) -> type[_StubOrchestrator]:
    _StubOrchestrator.calls = []
    monkeypatch.setattr("rankings.cli.ingest.IngestionOrchestrator", _StubOrchestrator)
    return _StubOrchestrator


def test_parse_override_builds_nested_mapping() -> None:
    assert parse_override("policies.storage.bucket=test") == {"policies": {"storage": {"bucket": "test"}}}
    assert parse_override("policies.fetch.retry_attempts=3") == {"policies": {"fetch": {"retry_attempts": 3}}}


def test_ingest_all_forwards_skip_flags(runner: CliRunner, cli_env, stub_orchestrator) -> None:
    result = runner.invoke(app, ["--run-id", "cli-test", "ingest", "all", "--skip-hs", "--skip-players"])

    assert result.exit_code == 0, result.output
    assert stub_orchestrator.calls == [
        ("run", {"skip_high_schools": True, "skip_circuit_teams": False, "skip_players": True})
    ]
    assert "cli-test" in result.output


def test_single_stage_commands(runner: CliRunner, cli_env, stub_orchestrator) -> None:
    for command, stage in (("high-schools", "high_schools"), ("circuit-teams", "circuit_teams"), ("players", "players")):
        result = runner.invoke(app, ["ingest", command])
        assert result.exit_code == 0, result.output

    assert [call[1] for call in stub_orchestrator.calls] == ["high_schools", "circuit_teams", "players"]


def test_missing_credentials_exit_with_configuration_error(cli_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY")

    assert run(["ingest", "all"]) == 2


def test_truncate_without_force_exits_non_zero(cli_env) -> None:
    assert run(["manage", "truncate"]) == 1


def test_truncate_with_force_reports_results(
    runner: CliRunner, cli_env, monkeypatch: pytest.MonkeyPatch
) -> None:
    received: dict[str, object] = {}

    def fake_truncate(settings, *, force=False):
        received["force"] = force
        return TruncationReport(
            tables_cleared=["players", "colleges", "circuit_teams", "high_schools"],
            objects_removed={"players": 3, "logos": 0},
            failed_prefixes=["logos"],
        )

    monkeypatch.setattr("rankings.cli.management.truncate_from_settings", fake_truncate)

    result = runner.invoke(app, ["manage", "truncate", "--force"])

    assert result.exit_code == 0, result.output
    assert received["force"] is True
    assert "colleges" in result.output
    assert "failed" in result.output


def test_config_masks_secrets(runner: CliRunner, cli_env) -> None:
    result = runner.invoke(app, ["-o", "policies.storage.bucket=override-bucket", "manage", "config"])

    assert result.exit_code == 0, result.output
    assert "override-bucket" in result.output
    assert "super-secret-key" not in result.output


def test_snapshot_rejects_unknown_kind(cli_env) -> None:
    assert run(["utilities", "snapshot", "--kind", "coaches"]) == 2


def test_snapshot_maps_kind_to_stage(runner: CliRunner, cli_env, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_export(settings, stage, *, output_dir=None):
        captured.update(stage=stage, output_dir=output_dir)
        return [Path(output_dir) / f"{stage}_combined.json"]

    monkeypatch.setattr("rankings.cli.utilities.export_snapshot", fake_export)

    result = runner.invoke(app, ["utilities", "snapshot", "--kind", "circuit-teams", "--output-dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert captured == {"stage": "circuit_teams", "output_dir": tmp_path}
