"""
Rollback data models: deployments, attempts, alarm snapshots and check results.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union


class Environment(str, Enum):
    """Deployment target. Ordered by criticality: test < staging < production."""
    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def rank(self) -> int:
        return _ENV_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Environment):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Environment):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Environment):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Environment):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def descending(cls) -> List["Environment"]:
        """Most customer-visible first: production, staging, test."""
        return sorted(cls, key=lambda env: env.rank, reverse=True)

    @classmethod
    def parse(cls, value: Union[str, "Environment"]) -> "Environment":
        if isinstance(value, Environment):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown environment: {value!r}") from None


_ENV_RANK = {
    Environment.TEST: 0,
    Environment.STAGING: 1,
    Environment.PRODUCTION: 2,
}


class RollbackLevel(str, Enum):
    STAGE = "stage"
    FULL = "full"
    NONE = "none"


class AlarmState(str, Enum):
    OK = "OK"
    ALARMING = "ALARMING"
    UNKNOWN = "UNKNOWN"             # insufficient data

    @classmethod
    def parse(cls, value: str) -> "AlarmState":
        raw = (value or "").strip().upper()
        if raw in ("ALARM", "ALARMING"):
            return cls.ALARMING
        if raw == "OK":
            return cls.OK
        return cls.UNKNOWN


class DeploymentStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class Deployment:
    """What must be reverted. Supplied by the trigger, never mutated."""
    deployment_id: str
    environment: Optional[Environment]
    version: str
    previous_version: Optional[str] = None
    infrastructure_changed: bool = False
    pipeline_execution_id: str = ""


@dataclass(frozen=True)
class RollbackAttempt:
    """Outcome of one orchestrator invocation at a given level."""
    level: RollbackLevel
    success: bool
    reason: Optional[str] = None
    duration_ms: Optional[int] = None


@dataclass(frozen=True)
class AlarmSnapshot:
    """State of one signal at one poll. Never cached across polls."""
    name: str
    state: AlarmState
    reason: Optional[str] = None


@dataclass(frozen=True)
class HealthCheckResult:
    success: bool
    failed_signals: List[AlarmSnapshot] = field(default_factory=list)
    elapsed_ms: int = 0
    reason: Optional[str] = None
    polls: int = 0


@dataclass(frozen=True)
class ValidationResult:
    success: bool
    reason: Optional[str] = None
    elapsed_ms: Optional[int] = None


@dataclass(frozen=True)
class CheckVerdict:
    """Verdict of a custom health check hook."""
    success: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ArtifactRef:
    version: str
    uri: str


@dataclass
class DeploymentRecord:
    """Row of analytics.deployment_log."""
    deployment_id: str
    environment: Environment
    version: str
    status: DeploymentStatus
    start_time: datetime
    end_time: Optional[datetime] = None
    previous_version: Optional[str] = None
    infrastructure_changed: bool = False
    commit_message: str = ""
    commit_author: str = ""
    pipeline_execution_id: str = ""
    artifact_location: str = ""
    rollback_reason: Optional[str] = None
    rollback_level: Optional[RollbackLevel] = None
    rollback_time: Optional[datetime] = None
    expires_at: Optional[int] = None      # unix seconds

    def to_deployment(self) -> Deployment:
        return Deployment(
            deployment_id=self.deployment_id,
            environment=self.environment,
            version=self.version,
            previous_version=self.previous_version,
            infrastructure_changed=self.infrastructure_changed,
            pipeline_execution_id=self.pipeline_execution_id,
        )


# ---------------------------------------------------------------------------
# Tagged result threaded through each rollback step
# ---------------------------------------------------------------------------

T = TypeVar("T")


class ErrorKind(str, Enum):
    ARTIFACT_NOT_FOUND = "artifact_not_found"
    TRANSPORT = "transport"
    VALIDATION_FAILED = "validation_failed"
    NO_LAST_KNOWN_GOOD = "no_last_known_good"
    REVERT_FAILED = "revert_failed"
    STATE_STORE = "state_store"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    detail: str
    ok: bool = field(default=False, init=False)


Outcome = Union[Ok[T], Err]


def _safe_int(x: Any, default: int = 0) -> int:
    if x is None:
        return default
    try:
        return int(x)
    except (TypeError, ValueError):
        return default


def payload_of(deployment: Deployment, **extra: Any) -> Dict[str, Any]:
    """Notification payload base for a deployment."""
    env = deployment.environment.value if deployment.environment else None
    payload: Dict[str, Any] = {
        "deployment_id": deployment.deployment_id,
        "environment": env,
        "current_version": deployment.version,
        "target_version": deployment.previous_version or "unknown",
        "pipeline_execution_id": deployment.pipeline_execution_id,
    }
    payload.update(extra)
    return payload
