"""
Collaborator contracts consumed by the rollback engine.

Production implementations are supplied by composition (see rct_radar and
rct_core.deployment_log); tests pass Mocks or small fakes.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import (
    AlarmSnapshot,
    ArtifactRef,
    CheckVerdict,
    Deployment,
    DeploymentRecord,
    Environment,
    RollbackLevel,
)


@runtime_checkable
class AlarmStateSource(Protocol):
    def fetch(self, names: List[str]) -> List[AlarmSnapshot]:
        """Current state of each named signal. Raises TransportError."""
        ...


class ArtifactStore(Protocol):
    def locate(self, version: str) -> Optional[ArtifactRef]:
        ...


class DeploymentStateStore(Protocol):
    def get_last_known_good(self, environment: Environment) -> Optional[DeploymentRecord]:
        ...

    def get_active_deployment(self, environment: Environment) -> Optional[DeploymentRecord]:
        ...

    def record_rollback_start(self, deployment: Deployment, reason: str) -> None:
        ...

    def record_rollback_success(self, deployment: Deployment, level: RollbackLevel) -> None:
        ...

    def record_rollback_failure(self, deployment: Deployment, reason: str) -> None:
        ...


class NotificationSink(Protocol):
    def send(self, event_type: str, payload: Dict[str, Any]) -> None:
        ...


class MetricsSink(Protocol):
    def publish(self, name: str, value: float, dimensions: Dict[str, str]) -> None:
        ...


class InfraReverter(Protocol):
    def revert(self, environment: Environment, version: str) -> None:
        """Redeploy infrastructure at `version`. Raises RevertError."""
        ...


class ApplicationReverter(Protocol):
    def revert(self, environment: Environment, artifact: ArtifactRef) -> None:
        """Redeploy the application from `artifact`. Raises RevertError."""
        ...


class VersionVerifier(Protocol):
    def current_version(self, environment: Environment) -> Optional[str]:
        ...


class CustomHealthCheck(Protocol):
    def __call__(self) -> CheckVerdict:
        ...


class EventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None:
        ...


class Clock(Protocol):
    def monotonic(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...
