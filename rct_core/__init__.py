"""
Core Module: Rollback data model, errors, collaborator contracts and config.

Shared by the radar (monitor / validator / orchestrator) and alert packages.
"""

from .models import (
    AlarmSnapshot,
    AlarmState,
    ArtifactRef,
    CheckVerdict,
    Deployment,
    DeploymentRecord,
    DeploymentStatus,
    Environment,
    Err,
    ErrorKind,
    HealthCheckResult,
    Ok,
    RollbackAttempt,
    RollbackLevel,
    ValidationResult,
)
from .errors import (
    ArtifactNotFound,
    InvalidDeploymentError,
    NoLastKnownGood,
    RevertError,
    RollbackCancelled,
    RollbackCoreError,
    RollbackFailedError,
    RollbackOrchestrationError,
    StateStoreError,
    TransportError,
    ValidationFailed,
)
from .runtime import CancellationToken, SystemClock

__all__ = [
    'AlarmSnapshot',
    'AlarmState',
    'ArtifactRef',
    'CheckVerdict',
    'Deployment',
    'DeploymentRecord',
    'DeploymentStatus',
    'Environment',
    'Err',
    'ErrorKind',
    'HealthCheckResult',
    'Ok',
    'RollbackAttempt',
    'RollbackLevel',
    'ValidationResult',
    'ArtifactNotFound',
    'InvalidDeploymentError',
    'NoLastKnownGood',
    'RevertError',
    'RollbackCancelled',
    'RollbackCoreError',
    'RollbackFailedError',
    'RollbackOrchestrationError',
    'StateStoreError',
    'TransportError',
    'ValidationFailed',
    'CancellationToken',
    'SystemClock',
]
