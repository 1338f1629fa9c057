"""
Radar Module: Health Monitoring & Rollback System

Watches deployment health signals and rolls failed deployments back,
escalating from a single environment to every environment when needed.
"""

from .monitor import HealthCheckMonitor, format_health_result
from .validator import RollbackValidator
from .orchestrator import (
    RollbackOrchestrator,
    ROLLBACK_INITIATED,
    ROLLBACK_SUCCEEDED,
    ROLLBACK_FAILED,
    format_rollback_attempt,
)
from .triggers import AlarmEventProcessor, handle_event
from .alerts import (
    LoggingNotificationSink,
    CompositeNotificationSink,
    generate_rollback_report,
)
from .metrics import DuckDBMetricsSink, LoggingMetricsSink
from .events import LoggingEventSink

__all__ = [
    'HealthCheckMonitor',
    'format_health_result',
    'RollbackValidator',
    'RollbackOrchestrator',
    'ROLLBACK_INITIATED',
    'ROLLBACK_SUCCEEDED',
    'ROLLBACK_FAILED',
    'format_rollback_attempt',
    'AlarmEventProcessor',
    'handle_event',
    'LoggingNotificationSink',
    'CompositeNotificationSink',
    'generate_rollback_report',
    'DuckDBMetricsSink',
    'LoggingMetricsSink',
    'LoggingEventSink',
]
