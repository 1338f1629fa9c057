"""
Radar Module: Rollback Triggers
Turns alarm state-change events into rollbacks of the active deployment.

Event shape (one alarm state change):
    {
        "detail": {
            "alarmName": "release-tower-production-high-error-rate",
            "state": {"value": "ALARM", "reason": "Threshold crossed"}
        }
    }

Alarm names follow {project}-{environment}-{metric}; an alarm is
deployment-related when it starts with one of the configured
{project}-{environment} prefixes.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from rct_core.errors import RollbackFailedError
from rct_core.interfaces import DeploymentStateStore
from rct_core.models import Deployment, Environment, RollbackAttempt

from .orchestrator import RollbackOrchestrator

logger = logging.getLogger(__name__)


class AlarmEventProcessor:
    """Decide whether an alarm event should roll back a deployment, and do it."""

    def __init__(
        self,
        orchestrator: RollbackOrchestrator,
        state_store: DeploymentStateStore,
        environment_prefixes: List[str],
    ):
        self.orchestrator = orchestrator
        self.state_store = state_store
        self.environment_prefixes = [p for p in environment_prefixes if p]

    def process_alarm_event(self, event: Dict[str, Any]) -> Optional[RollbackAttempt]:
        """
        Process one alarm event.

        Returns:
            RollbackAttempt if a rollback ran, None if the event was ignored

        Raises:
            RollbackFailedError: every rollback level failed
        """
        detail = event.get("detail") or {}
        alarm_name = detail.get("alarmName", "")
        state = detail.get("state") or {}
        state_value = state.get("value")
        state_reason = state.get("reason", "")

        logger.info(f"Processing alarm event: {alarm_name} state={state_value}")

        if state_value != "ALARM":
            logger.info(f"Ignoring non-ALARM state: {alarm_name} ({state_value})")
            return None

        if not self.is_deployment_alarm(alarm_name):
            logger.info(f"Ignoring non-deployment alarm: {alarm_name}")
            return None

        environment = self.extract_environment(alarm_name)
        if environment is None:
            logger.warning(f"Could not extract environment from alarm name: {alarm_name}")
            return None

        deployment = self.get_current_deployment(environment)
        if deployment is None:
            logger.warning(
                f"No active deployment found for alarm {alarm_name} ({environment.value})"
            )
            return None

        logger.info(
            f"Triggering rollback: deployment={deployment.deployment_id}, "
            f"version={deployment.version}, alarm={alarm_name}"
        )
        attempt = self.orchestrator.execute_rollback(
            deployment, f"Alarm {alarm_name} in ALARM state - {state_reason}"
        )

        if not attempt.success:
            logger.error(f"Rollback failed for {deployment.deployment_id}: {attempt.reason}")
            raise RollbackFailedError(
                f"Rollback failed: {attempt.reason}", deployment.deployment_id, attempt
            )

        logger.info(
            f"Rollback completed: deployment={deployment.deployment_id}, "
            f"level={attempt.level.value}, duration={attempt.duration_ms}ms"
        )
        return attempt

    def is_deployment_alarm(self, alarm_name: str) -> bool:
        return any(alarm_name.startswith(prefix) for prefix in self.environment_prefixes)

    def extract_environment(self, alarm_name: str) -> Optional[Environment]:
        """Environment is the last dash-separated segment of the matching prefix."""
        for prefix in self.environment_prefixes:
            if not alarm_name.startswith(prefix):
                continue
            candidate = prefix.split("-")[-1]
            try:
                return Environment.parse(candidate)
            except ValueError:
                continue
        return None

    def get_current_deployment(self, environment: Environment) -> Optional[Deployment]:
        record = self.state_store.get_active_deployment(environment)
        return record.to_deployment() if record else None


def handle_event(event: Dict[str, Any], processor: AlarmEventProcessor) -> Dict[str, Any]:
    """
    Process an alarm event and wrap the outcome in a response dict.

    Returns:
        {"status_code": 200|500, "body": <JSON string>}
    """
    start_time = time.monotonic()
    alarm_name = (event.get("detail") or {}).get("alarmName")

    if not processor.environment_prefixes:
        error = "No environment prefixes configured"
        logger.error(error)
        return {"status_code": 500, "body": json.dumps({"error": error})}

    try:
        processor.process_alarm_event(event)
    except Exception as e:
        duration = int((time.monotonic() - start_time) * 1000)
        logger.error(f"Failed to process alarm event {alarm_name}: {e}", exc_info=True)
        return {
            "status_code": 500,
            "body": json.dumps(
                {
                    "error": "Failed to process alarm event",
                    "message": str(e),
                    "alarmName": alarm_name,
                    "duration": f"{duration}ms",
                }
            ),
        }

    duration = int((time.monotonic() - start_time) * 1000)
    logger.info(f"Alarm event processed successfully: {alarm_name} ({duration}ms)")
    return {
        "status_code": 200,
        "body": json.dumps(
            {
                "message": "Alarm event processed successfully",
                "alarmName": alarm_name,
                "duration": f"{duration}ms",
            }
        ),
    }
