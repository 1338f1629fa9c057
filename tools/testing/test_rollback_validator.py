"""
Test Rollback Validator - stabilization, alarm snapshot, health window, version check.

Run: pytest tools/testing/test_rollback_validator.py
"""

from unittest.mock import Mock

import pytest

from conftest import FakeClock, ScriptedAlarmSource
from rct_core.config_models import parse_rollback_config
from rct_core.errors import TransportError
from rct_core.models import AlarmState, Environment, HealthCheckResult
from rct_radar.monitor import HealthCheckMonitor
from rct_radar.validator import RollbackValidator

SIGNALS = ["app-staging-build-failures", "app-staging-test-failures"]


def make_validator(source, clock, **kwargs):
    monitor = HealthCheckMonitor(source, poll_interval_seconds=30, clock=clock)
    return RollbackValidator(
        source,
        monitor=monitor,
        health_check_duration_seconds=kwargs.pop("duration", 150),
        clock=clock,
        **kwargs,
    )


def test_healthy_environment_passes_and_accumulates_elapsed():
    """Stabilization (60s for staging) + 150s window = 210s."""
    clock = FakeClock()
    validator = make_validator(ScriptedAlarmSource(), clock)

    result = validator.validate(Environment.STAGING, SIGNALS)

    assert result.success is True
    assert result.reason is None
    assert result.elapsed_ms == 210_000
    assert clock.sleeps[0] == 60


def test_stabilization_wait_scales_with_environment():
    for environment, expected in [
        (Environment.TEST, 30),
        (Environment.STAGING, 60),
        (Environment.PRODUCTION, 120),
    ]:
        clock = FakeClock()
        validator = make_validator(ScriptedAlarmSource(), clock)
        validator.validate(environment, [])
        assert clock.sleeps == [expected], environment


def test_snapshot_alarm_fails_before_monitoring():
    clock = FakeClock()
    source = ScriptedAlarmSource([{"app-staging-test-failures": AlarmState.ALARMING}])
    monitor = Mock()
    validator = RollbackValidator(source, monitor=monitor, clock=clock)

    result = validator.validate(Environment.STAGING, SIGNALS)

    assert result.success is False
    assert result.reason == "Alarms still in ALARMING state: app-staging-test-failures"
    assert result.elapsed_ms == 60_000
    monitor.monitor.assert_not_called()


def test_monitor_failure_reason_is_passed_through():
    clock = FakeClock()
    # Snapshot OK, then the monitoring window sees an alarm on its second poll
    source = ScriptedAlarmSource(
        [AlarmState.OK, AlarmState.OK, {"app-staging-build-failures": AlarmState.ALARMING}]
    )
    validator = make_validator(source, clock)

    result = validator.validate(Environment.STAGING, SIGNALS)

    assert result.success is False
    assert result.reason == "1 signal(s) alarming"
    # 60s stabilization + 30s until the failing poll
    assert result.elapsed_ms == 90_000


def test_unknown_signals_do_not_fail_snapshot():
    clock = FakeClock()
    validator = make_validator(ScriptedAlarmSource([AlarmState.UNKNOWN]), clock)

    result = validator.validate(Environment.TEST, SIGNALS)

    assert result.success is True


def test_version_mismatch_fails():
    clock = FakeClock()
    verifier = Mock()
    verifier.current_version.return_value = "v1.4.0"
    validator = make_validator(ScriptedAlarmSource(), clock, version_verifier=verifier)

    result = validator.validate(Environment.PRODUCTION, SIGNALS, target_version="v1.3.9")

    assert result.success is False
    assert result.reason == "version mismatch: expected v1.3.9, found v1.4.0"
    verifier.current_version.assert_called_once_with(Environment.PRODUCTION)


def test_version_match_passes():
    verifier = Mock()
    verifier.current_version.return_value = "v1.3.9"
    validator = make_validator(ScriptedAlarmSource(), FakeClock(), version_verifier=verifier)

    result = validator.validate("production", SIGNALS, target_version="v1.3.9")

    assert result.success is True


def test_version_check_skipped_without_verifier():
    validator = make_validator(ScriptedAlarmSource(), FakeClock())

    result = validator.validate(Environment.PRODUCTION, SIGNALS, target_version="v9")

    assert result.success is True


def test_transport_error_propagates_from_snapshot():
    source = ScriptedAlarmSource(error=TransportError("Failed to check alarms: down"))
    validator = make_validator(source, FakeClock())

    with pytest.raises(TransportError):
        validator.validate(Environment.TEST, SIGNALS)


def test_monitor_receives_configured_window():
    clock = FakeClock()
    monitor = Mock()
    monitor.monitor.return_value = HealthCheckResult(success=True, elapsed_ms=300_000, polls=10)
    validator = RollbackValidator(
        ScriptedAlarmSource(), monitor=monitor, health_check_duration_seconds=300, clock=clock
    )

    validator.validate(Environment.TEST, SIGNALS)

    args, kwargs = monitor.monitor.call_args
    assert args == (SIGNALS, 300.0)
    assert kwargs["cancel_token"] is None


def test_from_config_uses_configured_waits_and_window():
    config = parse_rollback_config(
        {
            "project": "app",
            "monitor": {"poll_interval_seconds": 10, "health_check_duration_seconds": 20},
            "environments": {"test": {"stabilization_wait_seconds": 5}},
        }
    )
    clock = FakeClock()
    source = ScriptedAlarmSource()
    validator = RollbackValidator.from_config(config, source, clock=clock)

    result = validator.validate(Environment.TEST, ["app-test-build-failures"])

    assert result.success is True
    # 5s wait, snapshot, then polls at 0s and 10s of a 20s window
    assert result.elapsed_ms == 25_000
    assert len(source.calls) == 3
