"""
Radar Module: Health Check Monitor
Polls alarm states for a bounded window and fails fast on the first alarm.

A session's verdict is decided by its earliest failing poll: once a poll sees
an ALARMING signal (or the custom check fails) the session returns and no
further polls happen.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Sequence, Union

from rct_core.errors import TransportError
from rct_core.interfaces import AlarmStateSource, Clock, CustomHealthCheck
from rct_core.models import AlarmSnapshot, AlarmState, CheckVerdict, HealthCheckResult
from rct_core.runtime import CancellationToken, SystemClock, elapsed_ms

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30.0
DEFAULT_HEALTH_CHECK_SECONDS = 300.0

Duration = Union[int, float, timedelta]


def to_seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def always_pass() -> CheckVerdict:
    """Default custom check."""
    return CheckVerdict(success=True)


class HealthCheckMonitor:
    """Monitor alarm states and a custom check hook for a fixed duration."""

    def __init__(
        self,
        alarm_source: AlarmStateSource,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        custom_check: Optional[CustomHealthCheck] = None,
        clock: Optional[Clock] = None,
    ):
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        self.alarm_source = alarm_source
        self.poll_interval = float(poll_interval_seconds)
        self.custom_check = custom_check or always_pass
        self.clock = clock or SystemClock()

    def monitor(
        self,
        signal_names: Sequence[str],
        duration: Duration = DEFAULT_HEALTH_CHECK_SECONDS,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HealthCheckResult:
        """
        Run one monitoring session.

        Polls at t=0 and then every poll interval. When at most one interval
        of the window remains, sleeps exactly the remainder and reports
        success, so a 150s window with a 30s cadence performs 5 polls.

        Raises:
            TransportError: alarm states could not be fetched (not retried)
            RollbackCancelled: cancel_token was set at a poll boundary
        """
        names = list(signal_names)
        window = max(to_seconds(duration), 0.0)

        if not names:
            logger.info("No signals configured - health check passes without polling")
            return HealthCheckResult(success=True, failed_signals=[], elapsed_ms=0, polls=0)

        logger.info(
            f"Starting health check monitoring: {len(names)} signal(s), "
            f"window={window:.0f}s, interval={self.poll_interval:.0f}s"
        )

        started = self.clock.monotonic()
        deadline = started + window
        polls = 0

        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(f"health check after {polls} poll(s)")

            try:
                snapshots = self.alarm_source.fetch(names)
            except TransportError as e:
                logger.error(f"Health check monitoring failed after {polls} poll(s): {e}")
                raise
            polls += 1

            alarming = [s for s in snapshots if s.state == AlarmState.ALARMING]
            if alarming:
                elapsed = elapsed_ms(self.clock, started)
                logger.error(
                    f"Health check failed on poll {polls}: "
                    f"{', '.join(s.name for s in alarming)} alarming"
                )
                return HealthCheckResult(
                    success=False,
                    failed_signals=alarming,
                    elapsed_ms=elapsed,
                    reason=f"{len(alarming)} signal(s) alarming",
                    polls=polls,
                )

            _warn_unknown(snapshots)

            verdict = self.custom_check()
            if not verdict.success:
                elapsed = elapsed_ms(self.clock, started)
                reason = verdict.reason or "Custom health check failed"
                logger.error(f"Health check failed on poll {polls}: {reason}")
                return HealthCheckResult(
                    success=False,
                    failed_signals=[],
                    elapsed_ms=elapsed,
                    reason=reason,
                    polls=polls,
                )

            remaining = deadline - self.clock.monotonic()
            logger.debug(
                f"Health check poll {polls} passed: {len(snapshots)} signal(s), "
                f"{max(remaining, 0):.0f}s remaining"
            )

            if remaining <= self.poll_interval:
                # Less than one interval left: wait out the window and finish
                self.clock.sleep(max(remaining, 0.0))
                logger.info(f"Health check monitoring completed successfully after {polls} poll(s)")
                return HealthCheckResult(
                    success=True,
                    failed_signals=[],
                    elapsed_ms=int(round(window * 1000)),
                    polls=polls,
                )

            self.clock.sleep(self.poll_interval)


def _warn_unknown(snapshots: List[AlarmSnapshot]) -> None:
    unknown = [s.name for s in snapshots if s.state == AlarmState.UNKNOWN]
    if unknown:
        logger.warning(f"Signals with insufficient data: {', '.join(unknown)}")


def format_health_result(result: HealthCheckResult) -> str:
    """Format a health check result for human-readable output."""
    lines = []
    status = "✅ HEALTHY" if result.success else "🚨 UNHEALTHY"
    lines.append(f"Status: {status}")
    lines.append(f"Polls: {result.polls}")
    lines.append(f"Elapsed: {result.elapsed_ms / 1000:.1f}s")
    if result.reason:
        lines.append(f"Reason: {result.reason}")
    for signal in result.failed_signals:
        detail = f" ({signal.reason})" if signal.reason else ""
        lines.append(f"  • {signal.name}: {signal.state.value}{detail}")
    return "\n".join(lines)
