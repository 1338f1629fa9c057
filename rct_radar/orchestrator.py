"""
Radar Module: Rollback Orchestrator
Reverts a failed deployment with a two-level strategy.

1. Stage rollback: revert the failing environment to its previous version
2. Full rollback: if the stage rollback fails, revert every environment to
   the last known good version, most customer-visible environment first

Every call ends in exactly one terminal outcome (stage succeeded, full
succeeded, both failed) with one state-store write and one terminal
notification. Notification and metric failures never abort a rollback.
"""

import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from rct_core.config_models import RollbackConfig
from rct_core.errors import (
    ArtifactNotFound,
    InvalidDeploymentError,
    NoLastKnownGood,
    RevertError,
    RollbackCancelled,
    RollbackCoreError,
    RollbackOrchestrationError,
    ValidationFailed,
)
from rct_core.interfaces import (
    AlarmStateSource,
    ApplicationReverter,
    ArtifactStore,
    Clock,
    DeploymentStateStore,
    EventSink,
    InfraReverter,
    MetricsSink,
    NotificationSink,
    VersionVerifier,
)
from rct_core.models import (
    ArtifactRef,
    Deployment,
    DeploymentRecord,
    Environment,
    Err,
    ErrorKind,
    Ok,
    Outcome,
    RollbackAttempt,
    RollbackLevel,
    ValidationResult,
    payload_of,
)
from rct_core.runtime import CancellationToken, SystemClock, elapsed_ms

from .events import LoggingEventSink
from .validator import RollbackValidator

logger = logging.getLogger(__name__)

# Notification event types
ROLLBACK_INITIATED = "rollback_initiated"
ROLLBACK_SUCCEEDED = "rollback_succeeded"
ROLLBACK_FAILED = "rollback_failed"


class RollbackOrchestrator:
    """Drive the rollback state machine for one deployment at a time."""

    def __init__(
        self,
        state_store: DeploymentStateStore,
        artifact_store: ArtifactStore,
        validator: RollbackValidator,
        application_reverter: ApplicationReverter,
        signal_names: Callable[[Environment], List[str]],
        infra_reverter: Optional[InfraReverter] = None,
        notifier: Optional[NotificationSink] = None,
        metrics: Optional[MetricsSink] = None,
        events: Optional[EventSink] = None,
        full_rollback_order: Optional[Sequence[Environment]] = None,
        clock: Optional[Clock] = None,
    ):
        self.state_store = state_store
        self.artifact_store = artifact_store
        self.validator = validator
        self.application_reverter = application_reverter
        self.infra_reverter = infra_reverter
        self.signal_names = signal_names
        self.notifier = notifier
        self.metrics = metrics
        self.events = events or LoggingEventSink()
        self.full_rollback_order = [
            Environment.parse(env) for env in (full_rollback_order or Environment.descending())
        ]
        if sorted(self.full_rollback_order) != sorted(Environment):
            raise ValueError("full_rollback_order must list every environment exactly once")
        self.clock = clock or SystemClock()

    @classmethod
    def from_config(
        cls,
        config: RollbackConfig,
        state_store: DeploymentStateStore,
        alarm_source: AlarmStateSource,
        artifact_store: ArtifactStore,
        application_reverter: ApplicationReverter,
        infra_reverter: Optional[InfraReverter] = None,
        version_verifier: Optional[VersionVerifier] = None,
        notifier: Optional[NotificationSink] = None,
        metrics: Optional[MetricsSink] = None,
        events: Optional[EventSink] = None,
        custom_check=None,
        clock: Optional[Clock] = None,
    ) -> "RollbackOrchestrator":
        clock = clock or SystemClock()
        validator = RollbackValidator.from_config(
            config,
            alarm_source,
            version_verifier=version_verifier,
            custom_check=custom_check,
            clock=clock,
        )
        return cls(
            state_store=state_store,
            artifact_store=artifact_store,
            validator=validator,
            application_reverter=application_reverter,
            signal_names=config.signal_names,
            infra_reverter=infra_reverter,
            notifier=notifier,
            metrics=metrics,
            events=events,
            full_rollback_order=config.full_rollback_order,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Public operation
    # ------------------------------------------------------------------

    def execute_rollback(
        self,
        deployment: Deployment,
        reason: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RollbackAttempt:
        """
        Execute a rollback for a failed deployment.

        Args:
            deployment: Deployment to revert (environment required)
            reason: Free text, used for audit and notifications only
            cancel_token: Optional external cancellation

        Returns:
            RollbackAttempt of the last level executed (stage, full or none)

        Raises:
            InvalidDeploymentError: deployment has no environment
            RollbackOrchestrationError: a collaborator failed outside its contract
        """
        deployment = _normalized(deployment)
        started = self.clock.monotonic()

        logger.info(
            f"Starting rollback: deployment={deployment.deployment_id}, "
            f"environment={deployment.environment.value}, version={deployment.version}"
        )
        self._emit("rollback_started", deployment, reason=reason)

        try:
            self.state_store.record_rollback_start(deployment, reason)
            self._notify(ROLLBACK_INITIATED, payload_of(deployment, reason=reason))

            try:
                level, failure = self._run_levels(deployment, cancel_token)
            except RollbackCancelled as e:
                self._emit("rollback_cancelled", deployment, where=e.where)
                level, failure = RollbackLevel.NONE, str(e)

            if failure is None:
                return self._finish_success(deployment, level, started)
            return self._finish_failure(deployment, failure, started)

        except Exception as e:
            duration = elapsed_ms(self.clock, started)
            message = f"Rollback orchestration failed: {e}"
            attempt = RollbackAttempt(
                level=RollbackLevel.NONE, success=False, reason=message, duration_ms=duration
            )
            logger.error(f"{message} (after {duration / 1000:.1f}s)")
            self._emit("rollback_crashed", deployment, error=str(e), error_type=type(e).__name__)
            self._notify(ROLLBACK_FAILED, payload_of(deployment, reason=message))
            raise RollbackOrchestrationError(message, deployment.deployment_id, attempt) from e

    def rollback_stage(
        self, deployment: Deployment, cancel_token: Optional[CancellationToken] = None
    ) -> RollbackAttempt:
        """Run only the stage-level procedure (no recording or notification)."""
        deployment = _normalized(deployment)
        started = self.clock.monotonic()
        outcome = self._stage_procedure(deployment, cancel_token)
        return _to_attempt(RollbackLevel.STAGE, outcome, elapsed_ms(self.clock, started))

    def rollback_full(
        self, deployment: Deployment, cancel_token: Optional[CancellationToken] = None
    ) -> RollbackAttempt:
        """Run only the full-rollback procedure (no recording or notification)."""
        deployment = _normalized(deployment)
        started = self.clock.monotonic()
        outcome = self._full_procedure(deployment, cancel_token)
        return _to_attempt(RollbackLevel.FULL, outcome, elapsed_ms(self.clock, started))

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run_levels(self, deployment: Deployment, cancel_token):
        """Returns (level, None) on success or (RollbackLevel.NONE, reason)."""
        stage_started = self.clock.monotonic()
        self._emit("stage_attempt_started", deployment)
        stage = self._stage_procedure(deployment, cancel_token)
        stage_attempt = _to_attempt(
            RollbackLevel.STAGE, stage, elapsed_ms(self.clock, stage_started)
        )
        self._emit_attempt("stage_attempt_finished", deployment, stage_attempt)

        if isinstance(stage, Ok):
            return RollbackLevel.STAGE, None

        logger.warning(f"Stage rollback failed, attempting full rollback: {stage.detail}")
        self._emit("rollback_escalated", deployment, stage_reason=stage.detail, error_kind=stage.kind.value)
        self._publish_metric(
            "RollbackEscalation", 1, {"Environment": deployment.environment.value}
        )

        full_started = self.clock.monotonic()
        self._emit("full_attempt_started", deployment)
        full = self._full_procedure(deployment, cancel_token)
        full_attempt = _to_attempt(RollbackLevel.FULL, full, elapsed_ms(self.clock, full_started))
        self._emit_attempt("full_attempt_finished", deployment, full_attempt)

        if isinstance(full, Ok):
            return RollbackLevel.FULL, None

        return RollbackLevel.NONE, (
            f"Stage rollback failed: {stage.detail}; Full rollback failed: {full.detail}"
        )

    def _stage_procedure(
        self, deployment: Deployment, cancel_token: Optional[CancellationToken]
    ) -> Outcome[ValidationResult]:
        """Revert one environment to deployment.previous_version and validate it."""
        environment = deployment.environment
        target_version = deployment.previous_version

        try:
            logger.info(
                f"Retrieving previous deployment artifacts: environment={environment.value}, "
                f"version={target_version}"
            )
            artifact = self._locate_artifacts(target_version)

            if deployment.infrastructure_changed:
                if self.infra_reverter is None:
                    raise RevertError(
                        "Infrastructure changed but no infrastructure reverter is configured"
                    )
                logger.info(f"Rolling back infrastructure: {environment.value} -> {target_version}")
                self.infra_reverter.revert(environment, target_version)

            logger.info(f"Rolling back application: {environment.value} -> {artifact.uri}")
            self.application_reverter.revert(environment, artifact)

            logger.info(f"Validating rollback: {environment.value}")
            validation = self.validator.validate(
                environment,
                self.signal_names(environment),
                target_version=target_version,
                cancel_token=cancel_token,
            )
            if not validation.success:
                raise ValidationFailed(validation.reason or "Rollback validation failed")
        except RollbackCancelled:
            raise
        except RollbackCoreError as e:
            return Err(e.kind or ErrorKind.REVERT_FAILED, str(e))

        return Ok(validation)

    def _full_procedure(
        self, deployment: Deployment, cancel_token: Optional[CancellationToken]
    ) -> Outcome[DeploymentRecord]:
        """Revert every environment to the last known good version, in order."""
        try:
            last_known_good = self._last_known_good()
        except NoLastKnownGood as e:
            return Err(ErrorKind.NO_LAST_KNOWN_GOOD, str(e))
        except RollbackCoreError as e:
            return Err(e.kind or ErrorKind.STATE_STORE, str(e))

        for environment in self.full_rollback_order:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(f"full rollback before {environment.value}")

            target = replace(
                deployment,
                environment=environment,
                previous_version=last_known_good.version,
            )
            logger.info(
                f"Rolling back environment {environment.value} to {last_known_good.version}"
            )
            self._emit(
                "environment_rollback_started", target, target_version=last_known_good.version
            )
            outcome = self._stage_procedure(target, cancel_token)
            self._emit(
                "environment_rollback_finished",
                target,
                success=outcome.ok,
                reason=outcome.detail if isinstance(outcome, Err) else None,
            )

            if isinstance(outcome, Err):
                return Err(outcome.kind, f"Failed to rollback {environment.value}: {outcome.detail}")

        return Ok(last_known_good)

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    def _locate_artifacts(self, version: Optional[str]) -> ArtifactRef:
        if not version:
            raise ArtifactNotFound(version)
        artifact = self.artifact_store.locate(version)
        if artifact is None:
            logger.warning(f"Deployment artifacts not found for version {version}")
            raise ArtifactNotFound(version)
        return artifact

    def _last_known_good(self) -> DeploymentRecord:
        """First non-null of production, staging, test."""
        for environment in Environment.descending():
            record = self.state_store.get_last_known_good(environment)
            if record is not None:
                logger.info(
                    f"Last known good deployment: {record.deployment_id} "
                    f"({environment.value}, version {record.version})"
                )
                return record
        raise NoLastKnownGood()

    def _finish_success(
        self, deployment: Deployment, level: RollbackLevel, started: float
    ) -> RollbackAttempt:
        duration = elapsed_ms(self.clock, started)
        self.state_store.record_rollback_success(deployment, level)
        self._notify(ROLLBACK_SUCCEEDED, payload_of(deployment, level=level.value, duration_ms=duration))
        self._publish_metric(
            "RollbackDuration",
            duration / 1000,
            {"Environment": deployment.environment.value, "Level": level.value},
        )
        logger.info(f"{level.value.capitalize()} rollback succeeded in {duration / 1000:.1f}s")

        attempt = RollbackAttempt(level=level, success=True, duration_ms=duration)
        self._emit_attempt("rollback_finished", deployment, attempt)
        return attempt

    def _finish_failure(self, deployment: Deployment, reason: str, started: float) -> RollbackAttempt:
        duration = elapsed_ms(self.clock, started)
        self.state_store.record_rollback_failure(deployment, reason)
        self._notify(ROLLBACK_FAILED, payload_of(deployment, reason=reason, duration_ms=duration))
        logger.error(f"All rollback attempts failed after {duration / 1000:.1f}s: {reason}")

        attempt = RollbackAttempt(
            level=RollbackLevel.NONE, success=False, reason=reason, duration_ms=duration
        )
        self._emit_attempt("rollback_finished", deployment, attempt)
        return attempt

    def _notify(self, event_type: str, payload: Dict) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send(event_type, payload)
        except Exception as e:
            logger.error(f"Failed to send {event_type} notification: {e}")
            self.events.emit(
                "notification_failed",
                notification=event_type,
                deployment_id=payload.get("deployment_id"),
                error=str(e),
            )

    def _publish_metric(self, name: str, value: float, dimensions: Dict[str, str]) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.publish(name, value, dimensions)
        except Exception as e:
            logger.error(f"Failed to publish metric {name}: {e}")
            self.events.emit("metric_failed", metric=name, error=str(e))

    def _emit(self, event: str, deployment: Deployment, **fields) -> None:
        self.events.emit(
            event,
            deployment_id=deployment.deployment_id,
            environment=deployment.environment.value,
            **fields,
        )

    def _emit_attempt(self, event: str, deployment: Deployment, attempt: RollbackAttempt) -> None:
        self._emit(
            event,
            deployment,
            level=attempt.level.value,
            success=attempt.success,
            reason=attempt.reason,
            duration_ms=attempt.duration_ms,
        )


def _normalized(deployment: Deployment) -> Deployment:
    if deployment.environment is None or not str(deployment.environment).strip():
        raise InvalidDeploymentError(
            f"Deployment {deployment.deployment_id} has no environment"
        )
    try:
        environment = Environment.parse(deployment.environment)
    except ValueError as e:
        raise InvalidDeploymentError(str(e)) from e
    if environment is deployment.environment:
        return deployment
    return replace(deployment, environment=environment)


def _to_attempt(level: RollbackLevel, outcome: Outcome, duration: int) -> RollbackAttempt:
    if isinstance(outcome, Ok):
        return RollbackAttempt(level=level, success=True, duration_ms=duration)
    return RollbackAttempt(level=level, success=False, reason=outcome.detail, duration_ms=duration)


def format_rollback_attempt(attempt: RollbackAttempt) -> str:
    """Format a rollback attempt for human-readable output."""
    lines = []
    if attempt.success:
        lines.append(f"✅ ROLLBACK SUCCEEDED ({attempt.level.value} level)")
    else:
        lines.append("🚨 ROLLBACK FAILED")
    if attempt.duration_ms is not None:
        lines.append(f"Duration: {attempt.duration_ms / 1000:.1f}s")
    if attempt.reason:
        lines.append(f"Reason: {attempt.reason}")
    return "\n".join(lines)
