"""
Radar Module: Wiring
Builds the production orchestrator from a rollback config and runtime settings.
"""

import logging
from typing import Optional

from rct_core.config_models import RollbackConfig
from rct_core.deployment_log import DeploymentLog
from rct_core.settings import Settings
from rct_alerts.email_sender import EmailNotificationSink, EmailSender

from .alarm_source import DuckDBAlarmStateSource
from .alerts import CompositeNotificationSink, LoggingNotificationSink
from .artifacts import FileSystemArtifactStore
from .metrics import DuckDBMetricsSink
from .orchestrator import RollbackOrchestrator
from .reverters import CommandVersionVerifier, ShellCommandReverter
from .triggers import AlarmEventProcessor

logger = logging.getLogger(__name__)


def build_notifier(config: RollbackConfig, settings: Settings) -> CompositeNotificationSink:
    sinks = [LoggingNotificationSink(console=config.notifications.console)]

    if config.notifications.email_recipients:
        if settings.email_enabled:
            sender = EmailSender(
                smtp_host=settings.smtp_host,
                smtp_port=settings.smtp_port,
                smtp_user=settings.smtp_user,
                smtp_password=settings.smtp_password,
                from_email=settings.smtp_from,
            )
            sinks.append(
                EmailNotificationSink(
                    sender, config.notifications.email_recipients, project=config.project
                )
            )
        else:
            logger.warning("Email recipients configured but SMTP settings are missing")

    return CompositeNotificationSink(sinks)


def build_orchestrator(
    config: RollbackConfig,
    settings: Settings,
    dry_run: Optional[bool] = None,
    state_store: Optional[DeploymentLog] = None,
) -> RollbackOrchestrator:
    """
    Args:
        config: Rollback config (signals, waits, commands, notifications)
        settings: Runtime settings (database, artifacts root, SMTP)
        dry_run: Explicit revert mode, used as given (the CLI passes it after
                 the --live CONFIRM prompt). When None, dry-run is on if
                 config.reverters.dry_run is set or settings.mode is not 'live'.
        state_store: Existing deployment log to reuse
    """
    if dry_run is None:
        dry_run = config.reverters.dry_run or not settings.live

    reverters = config.reverters
    state_store = state_store or DeploymentLog(settings.db_path)
    artifacts_root = config.artifacts_root or settings.artifacts_root

    infra_reverter = None
    if reverters.infra_command:
        infra_reverter = ShellCommandReverter(
            reverters.infra_command,
            name="infrastructure revert",
            dry_run=dry_run,
            timeout_seconds=reverters.timeout_seconds,
        )

    version_verifier = None
    if reverters.version_command and not dry_run:
        version_verifier = CommandVersionVerifier(reverters.version_command)

    logger.info(
        f"Building orchestrator: project={config.project}, db={settings.db_path}, "
        f"artifacts={artifacts_root}, dry_run={dry_run}"
    )

    return RollbackOrchestrator.from_config(
        config,
        state_store=state_store,
        alarm_source=DuckDBAlarmStateSource(settings.db_path),
        artifact_store=FileSystemArtifactStore(artifacts_root),
        application_reverter=ShellCommandReverter(
            reverters.application_command,
            name="application revert",
            dry_run=dry_run,
            timeout_seconds=reverters.timeout_seconds,
        ),
        infra_reverter=infra_reverter,
        version_verifier=version_verifier,
        notifier=build_notifier(config, settings),
        metrics=DuckDBMetricsSink(settings.db_path),
    )


def build_alarm_processor(
    config: RollbackConfig, settings: Settings, dry_run: Optional[bool] = None
) -> AlarmEventProcessor:
    state_store = DeploymentLog(settings.db_path)
    orchestrator = build_orchestrator(config, settings, dry_run=dry_run, state_store=state_store)
    return AlarmEventProcessor(orchestrator, state_store, config.alarm_prefixes())
