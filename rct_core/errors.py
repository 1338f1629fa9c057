"""
Rollback error taxonomy.

Expected failure modes (artifact missing, alarms still firing, no last known
good) are turned into Err outcomes by the orchestrator. Anything outside this
hierarchy is treated as a collaborator contract violation.
"""
from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from .models import ErrorKind

if TYPE_CHECKING:
    from .models import RollbackAttempt


class RollbackCoreError(Exception):
    """Base class for errors the rollback engine knows how to handle."""

    kind: Optional[ErrorKind] = None


class ArtifactNotFound(RollbackCoreError):
    kind = ErrorKind.ARTIFACT_NOT_FOUND

    def __init__(self, version: Optional[str]):
        self.version = version
        super().__init__("Previous deployment artifacts not found"
                         + (f" (version {version})" if version else ""))


class TransportError(RollbackCoreError):
    """Alarm source or other collaborator could not be reached."""
    kind = ErrorKind.TRANSPORT


class ValidationFailed(RollbackCoreError):
    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, reason: str, failed_signals: Optional[List[str]] = None):
        self.reason = reason
        self.failed_signals = failed_signals or []
        super().__init__(reason)


class NoLastKnownGood(RollbackCoreError):
    kind = ErrorKind.NO_LAST_KNOWN_GOOD

    def __init__(self, message: str = "No last known good deployment found"):
        super().__init__(message)


class RevertError(RollbackCoreError):
    """Infrastructure or application revert command failed."""
    kind = ErrorKind.REVERT_FAILED


class StateStoreError(RollbackCoreError):
    kind = ErrorKind.STATE_STORE


class RollbackCancelled(RollbackCoreError):
    kind = ErrorKind.CANCELLED

    def __init__(self, where: str):
        self.where = where
        super().__init__(f"Rollback cancelled: {where}")


class NotificationDeliveryError(RollbackCoreError):
    """Always recovered locally."""


class MetricsDeliveryError(RollbackCoreError):
    """Always recovered locally."""


class InvalidDeploymentError(ValueError):
    pass


class RollbackOrchestrationError(Exception):
    """Unexpected failure during a rollback. Carries the terminal attempt."""

    def __init__(self, message: str, deployment_id: str, attempt: "RollbackAttempt"):
        super().__init__(message)
        self.deployment_id = deployment_id
        self.attempt = attempt


class RollbackFailedError(Exception):
    """Raised by the alarm trigger when every rollback level failed."""

    def __init__(self, message: str, deployment_id: str, attempt: "RollbackAttempt"):
        super().__init__(message)
        self.deployment_id = deployment_id
        self.attempt = attempt
