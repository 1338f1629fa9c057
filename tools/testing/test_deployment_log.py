"""
Test Deployment Log - DuckDB persistence of deployments and rollback outcomes.

Run: pytest tools/testing/test_deployment_log.py
"""

import time
from datetime import datetime, timedelta, timezone

import pytest

from rct_core.deployment_log import DeploymentLog, RECORD_TTL_DAYS
from rct_core.models import Deployment, DeploymentStatus, Environment, RollbackLevel

T0 = datetime(2026, 10, 1, 9, 0, 0)
T0_EPOCH = 1790845200  # 2026-10-01T09:00:00Z


@pytest.fixture
def deployment_log(db_path):
    return DeploymentLog(db_path)


def record(deployment_log, environment, version, minutes, previous=None):
    return deployment_log.record_deployment_start(
        environment,
        version,
        previous_version=previous,
        commit_message=f"release {version}",
        commit_author="ci-bot",
        pipeline_execution_id=f"exec-{version}",
        started_at=T0 + timedelta(minutes=minutes),
    )


def test_record_deployment_start(deployment_log):
    deployment_id = record(deployment_log, Environment.STAGING, "v2.0.0", 0, previous="v1.9.0")

    assert deployment_id == f"staging#{T0_EPOCH * 1000}"

    stored = deployment_log.get_deployment(deployment_id)
    assert stored.environment == Environment.STAGING
    assert stored.version == "v2.0.0"
    assert stored.previous_version == "v1.9.0"
    assert stored.status == DeploymentStatus.IN_PROGRESS
    assert stored.start_time == T0
    assert stored.commit_author == "ci-bot"
    assert stored.expires_at == T0_EPOCH + RECORD_TTL_DAYS * 86400


def test_deployment_id_is_utc_epoch_regardless_of_host_timezone(deployment_log, monkeypatch):
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    try:
        deployment_id = record(deployment_log, Environment.TEST, "v2.0.0", 0)
    finally:
        monkeypatch.undo()
        time.tzset()

    assert deployment_id == f"test#{T0_EPOCH * 1000}"
    assert deployment_log.get_deployment(deployment_id).expires_at == (
        T0_EPOCH + RECORD_TTL_DAYS * 86400
    )


def test_aware_start_time_is_stored_as_utc(deployment_log):
    berlin_summer = timezone(timedelta(hours=2))
    started = datetime(2026, 10, 1, 11, 0, 0, tzinfo=berlin_summer)

    deployment_id = deployment_log.record_deployment_start(
        Environment.PRODUCTION, "v3.0.0", started_at=started
    )

    assert deployment_id == f"production#{T0_EPOCH * 1000}"
    assert deployment_log.get_deployment(deployment_id).start_time == T0


def test_get_deployment_missing_returns_none(deployment_log):
    assert deployment_log.get_deployment("staging#0") is None


def test_last_known_good_is_most_recent_succeeded(deployment_log):
    first = record(deployment_log, Environment.PRODUCTION, "v1.0.0", 0)
    second = record(deployment_log, Environment.PRODUCTION, "v1.1.0", 10)
    failed = record(deployment_log, Environment.PRODUCTION, "v1.2.0", 20)
    deployment_log.update_deployment_status(first, DeploymentStatus.SUCCEEDED)
    deployment_log.update_deployment_status(second, DeploymentStatus.SUCCEEDED)
    deployment_log.update_deployment_status(failed, DeploymentStatus.FAILED)

    last_good = deployment_log.get_last_known_good(Environment.PRODUCTION)

    assert last_good.deployment_id == second
    assert last_good.version == "v1.1.0"
    assert last_good.end_time is not None
    assert deployment_log.get_last_known_good(Environment.STAGING) is None


def test_history_is_newest_first_and_pages(deployment_log):
    ids = [record(deployment_log, Environment.TEST, f"v0.{i}", i) for i in range(5)]
    record(deployment_log, Environment.STAGING, "v9", 0)

    page = deployment_log.get_deployment_history(Environment.TEST, limit=3)
    assert [r.deployment_id for r in page] == list(reversed(ids))[:3]

    next_page = deployment_log.get_deployment_history(
        Environment.TEST, limit=3, before=page[-1].start_time
    )
    assert [r.deployment_id for r in next_page] == [ids[1], ids[0]]


def test_active_deployment_is_newest_in_progress(deployment_log):
    older = record(deployment_log, Environment.STAGING, "v1", 0)
    newer = record(deployment_log, Environment.STAGING, "v2", 5)
    deployment_log.update_deployment_status(newer, DeploymentStatus.SUCCEEDED)

    active = deployment_log.get_active_deployment(Environment.STAGING)

    assert active.deployment_id == older
    assert deployment_log.get_active_deployment(Environment.PRODUCTION) is None


def test_rollback_success_marks_rolled_back(deployment_log):
    deployment_id = record(deployment_log, Environment.STAGING, "v2", 0, previous="v1")
    deployment = deployment_log.get_deployment(deployment_id).to_deployment()

    deployment_log.record_rollback_start(deployment, "error rate alarm")
    deployment_log.record_rollback_success(deployment, RollbackLevel.STAGE)

    stored = deployment_log.get_deployment(deployment_id)
    assert stored.status == DeploymentStatus.ROLLED_BACK
    assert stored.rollback_level == RollbackLevel.STAGE
    assert stored.rollback_reason == "error rate alarm"
    assert stored.rollback_time is not None


def test_rollback_failure_marks_failed_with_reason(deployment_log):
    deployment_id = record(deployment_log, Environment.STAGING, "v2", 0, previous="v1")
    deployment = deployment_log.get_deployment(deployment_id).to_deployment()

    deployment_log.record_rollback_failure(deployment, "Stage rollback failed: x; Full rollback failed: y")

    stored = deployment_log.get_deployment(deployment_id)
    assert stored.status == DeploymentStatus.FAILED
    assert stored.rollback_level == RollbackLevel.NONE
    assert stored.rollback_reason.startswith("Stage rollback failed")


def test_rollback_update_for_unknown_deployment_only_warns(deployment_log, caplog):
    ghost = Deployment(deployment_id="staging#1", environment=Environment.STAGING, version="v1")

    with caplog.at_level("WARNING"):
        deployment_log.record_rollback_success(ghost, RollbackLevel.FULL)

    assert "not in deployment log" in caplog.text


def test_to_deployment_carries_previous_version(deployment_log):
    deployment_id = record(deployment_log, Environment.PRODUCTION, "v3", 0, previous="v2")

    deployment = deployment_log.get_deployment(deployment_id).to_deployment()

    assert deployment.previous_version == "v2"
    assert deployment.pipeline_execution_id == "exec-v3"
    assert deployment.environment == Environment.PRODUCTION
