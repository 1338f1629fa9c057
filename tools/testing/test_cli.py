"""
Test the radar CLI commands against a temporary DuckDB file.

Run: pytest tools/testing/test_cli.py
"""

import json
from pathlib import Path

import pytest
import yaml

from rct_core.deployment_log import DeploymentLog
from rct_core.models import DeploymentStatus, Environment, RollbackLevel
from rct_radar import cli
from rct_radar.alarm_source import DuckDBAlarmStateSource

CONFIG = {
    "project": "shop",
    "monitor": {"poll_interval_seconds": 1, "health_check_duration_seconds": 0},
    "environments": {
        env: {"stabilization_wait_seconds": 0} for env in ("test", "staging", "production")
    },
    "reverters": {"application_command": "deploy-app {environment} {artifact}", "dry_run": True},
    "notifications": {"console": False},
}


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RCT_ARTIFACTS_ROOT", str(tmp_path / "store"))
    monkeypatch.setenv("RCT_LOG_DIR", "")
    monkeypatch.delenv("RCT_SMTP_HOST", raising=False)
    monkeypatch.setattr(cli, "init_logging", lambda *args, **kwargs: None)

    config_path = tmp_path / "rollback.yaml"
    config_path.write_text(yaml.safe_dump(CONFIG))
    return tmp_path, str(config_path), str(tmp_path / "rollback.duckdb")


def run_cli(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def set_all_ok(db_path):
    alarms = DuckDBAlarmStateSource(db_path)
    for env in ("test", "staging", "production"):
        for metric in ("build-failures", "test-failures", "high-error-rate"):
            alarms.set_state(f"shop-{env}-{metric}", "OK")


def test_init_db_creates_tables(workspace, capsys):
    _, _, db_path = workspace

    assert run_cli(["--db-path", db_path, "init-db"]) == 0
    out = capsys.readouterr().out
    assert "deployment_log" in out
    assert "alarm_state" in out


def test_check_exit_code_follows_health(workspace):
    _, config_path, db_path = workspace
    set_all_ok(db_path)

    assert run_cli(["--db-path", db_path, "check", config_path, "--environment", "staging"]) == 0

    DuckDBAlarmStateSource(db_path).set_state("shop-staging-test-failures", "ALARM", "3 failed")
    assert run_cli(["--db-path", db_path, "check", config_path, "--environment", "staging"]) == 1


def test_history_marks_last_known_good(workspace, capsys):
    _, config_path, db_path = workspace
    deployment_log = DeploymentLog(db_path)
    good = deployment_log.record_deployment_start(Environment.PRODUCTION, "v1.0.0")
    deployment_log.update_deployment_status(good, DeploymentStatus.SUCCEEDED)

    code = run_cli(["--db-path", db_path, "history", config_path, "--environment", "production"])

    assert code == 0
    out = capsys.readouterr().out
    assert "v1.0.0" in out
    assert "last known good" in out


def test_dry_run_rollback_writes_report(workspace):
    tmp_path, config_path, db_path = workspace
    artifact = tmp_path / "store" / "artifacts" / "v1.0.0" / "artifact.zip"
    artifact.parent.mkdir(parents=True)
    artifact.write_bytes(b"zip")
    set_all_ok(db_path)
    deployment_log = DeploymentLog(db_path)
    active = deployment_log.record_deployment_start(
        Environment.STAGING, "v1.1.0", previous_version="v1.0.0"
    )

    code = run_cli([
        "--db-path", db_path, "rollback", config_path,
        "--deployment-id", active, "--reason", "error rate",
    ])

    assert code == 0
    assert deployment_log.get_deployment(active).rollback_level == RollbackLevel.STAGE
    reports = list(Path("reports/rollbacks/shop").glob("*_rollback.json"))
    assert len(reports) == 1
    report = json.loads(reports[0].read_text())
    assert report["rollbacks"][0]["level"] == "stage"
    assert report["rollbacks"][0]["dry_run"] is True


def test_rollback_unknown_deployment(workspace):
    _, config_path, db_path = workspace

    code = run_cli([
        "--db-path", db_path, "rollback", config_path,
        "--deployment-id", "staging#0", "--reason", "x",
    ])

    assert code == 1


def test_no_command_prints_help(workspace):
    assert run_cli([]) == 1
