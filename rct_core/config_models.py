from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Optional

from .models import Environment

DEFAULT_SIGNAL_METRICS = ["build-failures", "test-failures", "high-error-rate"]

# Seconds to let a reverted deployment settle, scaled by criticality
DEFAULT_STABILIZATION_SECONDS = {
    Environment.TEST: 30.0,
    Environment.STAGING: 60.0,
    Environment.PRODUCTION: 120.0,
}


class MonitorSettings(BaseModel):
    poll_interval_seconds: float = 30.0
    health_check_duration_seconds: float = 300.0

    @field_validator("poll_interval_seconds")
    @classmethod
    def poll_interval_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("monitor.poll_interval_seconds must be positive")
        return v

    @field_validator("health_check_duration_seconds")
    @classmethod
    def duration_not_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("monitor.health_check_duration_seconds must be >= 0")
        return v


class EnvironmentSettings(BaseModel):
    stabilization_wait_seconds: Optional[float] = None
    # Explicit signal names; when empty they are derived from signal_template
    signals: List[str] = Field(default_factory=list)

    @field_validator("stabilization_wait_seconds")
    @classmethod
    def wait_not_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("stabilization_wait_seconds must be >= 0")
        return v


class ReverterSettings(BaseModel):
    # Command templates; {environment}, {version} and {artifact} are substituted
    infra_command: Optional[str] = None
    application_command: Optional[str] = None
    version_command: Optional[str] = None
    dry_run: bool = True
    timeout_seconds: float = 900.0


class NotificationSettings(BaseModel):
    console: bool = True
    email_recipients: List[str] = Field(default_factory=list)


class RollbackConfig(BaseModel):
    project: str
    signal_template: str = "{project}-{environment}-{metric}"
    signal_metrics: List[str] = Field(default_factory=lambda: list(DEFAULT_SIGNAL_METRICS))

    monitor: MonitorSettings = MonitorSettings()
    environments: Dict[Environment, EnvironmentSettings] = Field(default_factory=dict)
    full_rollback_order: List[Environment] = Field(default_factory=Environment.descending)

    artifacts_root: Optional[str] = None
    reverters: ReverterSettings = ReverterSettings()
    notifications: NotificationSettings = NotificationSettings()

    @field_validator("project")
    @classmethod
    def project_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("project must not be empty")
        return v2

    @model_validator(mode="after")
    def full_order_is_complete(self) -> "RollbackConfig":
        if (
            len(self.full_rollback_order) != len(set(self.full_rollback_order))
            or set(self.full_rollback_order) != set(Environment)
        ):
            raise ValueError("full_rollback_order must list every environment exactly once")
        return self

    def stabilization_wait(self, environment: Environment) -> float:
        env_settings = self.environments.get(environment)
        if env_settings and env_settings.stabilization_wait_seconds is not None:
            return env_settings.stabilization_wait_seconds
        return DEFAULT_STABILIZATION_SECONDS[environment]

    def signal_names(self, environment: Environment) -> List[str]:
        env_settings = self.environments.get(environment)
        if env_settings and env_settings.signals:
            return list(env_settings.signals)
        return [
            self.signal_template.format(
                project=self.project, environment=environment.value, metric=metric
            )
            for metric in self.signal_metrics
        ]

    def alarm_prefixes(self) -> List[str]:
        """Alarm-name prefixes used by the alarm trigger, one per environment."""
        return [f"{self.project}-{env.value}" for env in Environment]


def parse_rollback_config(data: dict) -> RollbackConfig:
    # Raises ValidationError if invalid
    return RollbackConfig.model_validate(data)
