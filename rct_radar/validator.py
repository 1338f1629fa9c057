"""
Radar Module: Rollback Validator
Decides whether a reverted (or live) deployment is healthy.

Steps, each a hard gate:
1. Stabilization wait (per-environment, always waited in full)
2. Alarm snapshot - one fetch, any ALARMING signal fails
3. Health monitoring window (HealthCheckMonitor)
4. Version check - live version must equal the rollback target
"""

import logging
from typing import Dict, Optional, Sequence

from rct_core.config_models import DEFAULT_STABILIZATION_SECONDS, RollbackConfig
from rct_core.interfaces import AlarmStateSource, Clock, VersionVerifier
from rct_core.models import AlarmState, Environment, ValidationResult
from rct_core.runtime import CancellationToken, SystemClock, elapsed_ms

from .monitor import DEFAULT_HEALTH_CHECK_SECONDS, HealthCheckMonitor

logger = logging.getLogger(__name__)


class RollbackValidator:
    """Validate rollback success through stabilization, alarms, health window and version."""

    def __init__(
        self,
        alarm_source: AlarmStateSource,
        monitor: Optional[HealthCheckMonitor] = None,
        version_verifier: Optional[VersionVerifier] = None,
        stabilization_waits: Optional[Dict[Environment, float]] = None,
        health_check_duration_seconds: float = DEFAULT_HEALTH_CHECK_SECONDS,
        clock: Optional[Clock] = None,
    ):
        self.alarm_source = alarm_source
        self.clock = clock or SystemClock()
        self.monitor = monitor or HealthCheckMonitor(alarm_source, clock=self.clock)
        self.version_verifier = version_verifier
        self.stabilization_waits = dict(DEFAULT_STABILIZATION_SECONDS)
        if stabilization_waits:
            self.stabilization_waits.update(stabilization_waits)
        self.health_check_duration = float(health_check_duration_seconds)

    @classmethod
    def from_config(
        cls,
        config: RollbackConfig,
        alarm_source: AlarmStateSource,
        version_verifier: Optional[VersionVerifier] = None,
        custom_check=None,
        clock: Optional[Clock] = None,
    ) -> "RollbackValidator":
        clock = clock or SystemClock()
        monitor = HealthCheckMonitor(
            alarm_source,
            poll_interval_seconds=config.monitor.poll_interval_seconds,
            custom_check=custom_check,
            clock=clock,
        )
        return cls(
            alarm_source,
            monitor=monitor,
            version_verifier=version_verifier,
            stabilization_waits={env: config.stabilization_wait(env) for env in Environment},
            health_check_duration_seconds=config.monitor.health_check_duration_seconds,
            clock=clock,
        )

    def validate(
        self,
        environment: Environment,
        signal_names: Sequence[str],
        target_version: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ValidationResult:
        """
        Run one validation pass.

        Args:
            environment: Environment that was reverted
            signal_names: Alarm names to judge it by
            target_version: Expected live version after the revert (optional)
            cancel_token: Honoured inside the monitoring window

        Returns:
            ValidationResult with elapsed time across all steps

        Raises:
            TransportError: alarm states could not be fetched
        """
        environment = Environment.parse(environment)
        names = list(signal_names)
        started = self.clock.monotonic()

        logger.info(
            f"Starting rollback validation: environment={environment.value}, "
            f"signals={len(names)}, target_version={target_version}"
        )

        # Step 1: Stabilization wait
        wait = self.stabilization_waits[environment]
        logger.info(f"Waiting {wait:.0f}s for {environment.value} to stabilize")
        self.clock.sleep(wait)

        # Step 2: Alarm snapshot
        snapshot_reason = self._check_alarms(names)
        if snapshot_reason:
            return self._fail(snapshot_reason, started)

        # Step 3: Health monitoring window
        health = self.monitor.monitor(names, self.health_check_duration, cancel_token=cancel_token)
        if not health.success:
            return self._fail(health.reason or "Health checks failed", started)

        # Step 4: Version check
        if target_version and self.version_verifier is not None:
            live_version = self.version_verifier.current_version(environment)
            if live_version != target_version:
                return self._fail(
                    f"version mismatch: expected {target_version}, found {live_version}",
                    started,
                )
        elif target_version:
            logger.debug("No version verifier configured - skipping version check")

        elapsed = elapsed_ms(self.clock, started)
        logger.info(f"Rollback validation succeeded for {environment.value} in {elapsed / 1000:.1f}s")
        return ValidationResult(success=True, elapsed_ms=elapsed)

    def _check_alarms(self, names) -> Optional[str]:
        """Returns a failure reason, or None if no signal is alarming."""
        if not names:
            return None

        snapshots = self.alarm_source.fetch(names)

        alarming = [s.name for s in snapshots if s.state == AlarmState.ALARMING]
        if alarming:
            return f"Alarms still in ALARMING state: {', '.join(alarming)}"

        unknown = [s.name for s in snapshots if s.state == AlarmState.UNKNOWN]
        if unknown:
            # Insufficient data never fails validation
            logger.warning(f"Some alarms have insufficient data: {', '.join(unknown)}")

        return None

    def _fail(self, reason: str, started: float) -> ValidationResult:
        elapsed = elapsed_ms(self.clock, started)
        logger.error(f"Rollback validation failed after {elapsed / 1000:.1f}s: {reason}")
        return ValidationResult(success=False, reason=reason, elapsed_ms=elapsed)
