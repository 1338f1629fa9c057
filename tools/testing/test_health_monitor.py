"""
Test Health Check Monitor - polling window, fail-fast and cancellation.

Run: pytest tools/testing/test_health_monitor.py
"""

import itertools
from datetime import timedelta

import pytest

from conftest import FakeClock, ScriptedAlarmSource
from rct_core.errors import RollbackCancelled, TransportError
from rct_core.models import AlarmState, CheckVerdict
from rct_core.runtime import CancellationToken
from rct_radar.monitor import HealthCheckMonitor, format_health_result

SIGNALS = ["app-production-build-failures", "app-production-high-error-rate"]


def test_all_ok_window_polls_five_times():
    """150s window at 30s cadence: polls at 0, 30, 60, 90, 120 then waits out the rest."""
    clock = FakeClock()
    source = ScriptedAlarmSource([AlarmState.OK])
    monitor = HealthCheckMonitor(source, poll_interval_seconds=30, clock=clock)

    result = monitor.monitor(SIGNALS, duration=150)

    assert result.success is True
    assert result.polls == 5
    assert len(source.calls) == 5
    assert result.elapsed_ms == 150_000
    assert sum(clock.sleeps) == pytest.approx(150)
    assert result.failed_signals == []


def test_accepts_timedelta_duration():
    clock = FakeClock()
    monitor = HealthCheckMonitor(ScriptedAlarmSource(), poll_interval_seconds=30, clock=clock)

    result = monitor.monitor(SIGNALS, duration=timedelta(minutes=1))

    assert result.success is True
    assert result.polls == 2
    assert result.elapsed_ms == 60_000


def test_fails_on_first_alarming_poll_and_stops():
    """[OK, OK, ALARMING, OK, OK] fails on poll 3; polls 4 and 5 never happen."""
    clock = FakeClock()
    source = ScriptedAlarmSource(
        [
            AlarmState.OK,
            AlarmState.OK,
            {"app-production-high-error-rate": AlarmState.ALARMING},
            AlarmState.OK,
            AlarmState.OK,
        ]
    )
    monitor = HealthCheckMonitor(source, poll_interval_seconds=30, clock=clock)

    result = monitor.monitor(SIGNALS, duration=150)

    assert result.success is False
    assert result.polls == 3
    assert len(source.calls) == 3
    assert result.elapsed_ms == 60_000
    assert [s.name for s in result.failed_signals] == ["app-production-high-error-rate"]
    assert result.reason == "1 signal(s) alarming"


def alarm_sequences():
    """
    Per-poll states for a 5-poll window with the first ALARMING at index k.

    Polls before k mix OK and UNKNOWN; up to two polls after k take any state.
    """
    before = [AlarmState.OK, AlarmState.UNKNOWN]
    after = [AlarmState.OK, AlarmState.ALARMING, AlarmState.UNKNOWN]
    for k in range(5):
        for head in itertools.product(before, repeat=k):
            for tail in itertools.product(after, repeat=min(2, 4 - k)):
                yield k, list(head) + [AlarmState.ALARMING] + list(tail)


@pytest.mark.parametrize(
    "first_alarm, script",
    list(alarm_sequences()),
    ids=lambda value: "-".join(s.value for s in value) if isinstance(value, list) else str(value),
)
def test_failure_is_final_at_first_alarming_poll(first_alarm, script):
    clock = FakeClock()
    source = ScriptedAlarmSource(script)
    monitor = HealthCheckMonitor(source, poll_interval_seconds=30, clock=clock)

    result = monitor.monitor(SIGNALS, duration=150)

    assert result.success is False
    assert result.polls == len(source.calls) == first_alarm + 1
    assert result.elapsed_ms == first_alarm * 30_000
    assert {s.name for s in result.failed_signals} == set(SIGNALS)


def test_alarm_at_first_poll_fails_immediately():
    clock = FakeClock()
    monitor = HealthCheckMonitor(
        ScriptedAlarmSource([AlarmState.ALARMING]), poll_interval_seconds=30, clock=clock
    )

    result = monitor.monitor(SIGNALS, duration=300)

    assert result.success is False
    assert result.polls == 1
    assert result.elapsed_ms == 0
    assert result.reason == "2 signal(s) alarming"
    assert clock.sleeps == []


def test_empty_signal_list_succeeds_without_polling():
    source = ScriptedAlarmSource([AlarmState.ALARMING])
    custom_check = lambda: CheckVerdict(success=False, reason="should not run")
    monitor = HealthCheckMonitor(source, custom_check=custom_check, clock=FakeClock())

    result = monitor.monitor([], duration=300)

    assert result.success is True
    assert result.polls == 0
    assert result.elapsed_ms == 0
    assert source.calls == []


def test_unknown_signals_do_not_fail(caplog):
    clock = FakeClock()
    monitor = HealthCheckMonitor(
        ScriptedAlarmSource([AlarmState.UNKNOWN]), poll_interval_seconds=30, clock=clock
    )

    with caplog.at_level("WARNING"):
        result = monitor.monitor(SIGNALS, duration=60)

    assert result.success is True
    assert "insufficient data" in caplog.text


def test_transport_error_propagates():
    source = ScriptedAlarmSource(error=TransportError("Failed to check alarms: boom"))
    monitor = HealthCheckMonitor(source, clock=FakeClock())

    with pytest.raises(TransportError):
        monitor.monitor(SIGNALS, duration=300)


def test_custom_check_failure_fails_session():
    clock = FakeClock()
    verdicts = iter([CheckVerdict(success=True), CheckVerdict(success=False, reason="p99 too high")])
    monitor = HealthCheckMonitor(
        ScriptedAlarmSource(), poll_interval_seconds=30, custom_check=lambda: next(verdicts), clock=clock
    )

    result = monitor.monitor(SIGNALS, duration=300)

    assert result.success is False
    assert result.polls == 2
    assert result.reason == "p99 too high"
    assert result.failed_signals == []


def test_cancellation_stops_at_poll_boundary():
    clock = FakeClock()
    token = CancellationToken()
    source = ScriptedAlarmSource()

    original_sleep = clock.sleep

    def sleep_then_cancel(seconds):
        original_sleep(seconds)
        token.cancel("operator abort")

    clock.sleep = sleep_then_cancel
    monitor = HealthCheckMonitor(source, poll_interval_seconds=30, clock=clock)

    with pytest.raises(RollbackCancelled) as exc_info:
        monitor.monitor(SIGNALS, duration=300, cancel_token=token)

    assert len(source.calls) == 1
    assert "operator abort" in str(exc_info.value)


def test_poll_interval_must_be_positive():
    with pytest.raises(ValueError):
        HealthCheckMonitor(ScriptedAlarmSource(), poll_interval_seconds=0)


def test_format_health_result_lists_failed_signals():
    monitor = HealthCheckMonitor(
        ScriptedAlarmSource([AlarmState.ALARMING]), clock=FakeClock()
    )
    result = monitor.monitor(SIGNALS[:1], duration=30)

    text = format_health_result(result)

    assert "UNHEALTHY" in text
    assert "app-production-build-failures: ALARMING" in text
