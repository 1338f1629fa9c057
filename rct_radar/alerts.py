"""
Radar Module: Alert System
Notification sinks for rollback events.

Every sink is best-effort from the orchestrator's point of view: a failing
sink is logged and never aborts a rollback.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

# Alert severity per notification event type
ALERT_SEVERITY = {
    "rollback_initiated": "warning",
    "rollback_succeeded": "success",
    "rollback_failed": "critical",
}

SEVERITY_EMOJI = {
    "critical": "🚨",
    "warning": "⚠️",
    "info": "ℹ️",
    "success": "✅",
}

ALERT_TITLES = {
    "rollback_initiated": "ROLLBACK INITIATED",
    "rollback_succeeded": "ROLLBACK SUCCEEDED",
    "rollback_failed": "ROLLBACK FAILED",
}


def format_alert_header(severity: str, title: str) -> str:
    """
    Format alert header with severity emoji.

    Args:
        severity: 'critical', 'warning', 'info', or 'success'
        title: Alert title

    Returns:
        Formatted header string
    """
    emoji = SEVERITY_EMOJI.get(severity, "📊")
    return f"{emoji} {title}"


def alert_subject(event_type: str, payload: Dict[str, Any]) -> str:
    title = ALERT_TITLES.get(event_type, event_type.replace("_", " ").upper())
    return f"{title.title()} - {payload.get('environment', 'unknown')}"


def create_alert_payload(event_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create standardized alert payload for any channel.

    Args:
        event_type: 'rollback_initiated', 'rollback_succeeded', 'rollback_failed'
        payload: Event data from the orchestrator

    Returns:
        Standardized alert payload dict
    """
    return {
        "event_type": event_type,
        "severity": ALERT_SEVERITY.get(event_type, "info"),
        "subject": alert_subject(event_type, payload),
        "timestamp": datetime.utcnow().isoformat(),
        "data": payload,
    }


def format_rollback_alert(event_type: str, payload: Dict[str, Any]) -> str:
    """Render a rollback event as a console alert block."""
    alert = create_alert_payload(event_type, payload)
    title = ALERT_TITLES.get(event_type, event_type.upper())

    lines = ["", "=" * 80, format_alert_header(alert["severity"], title), "=" * 80]
    lines.append(f"\nEnvironment: {payload.get('environment', 'unknown')}")
    lines.append(f"Deployment: {payload.get('deployment_id', 'unknown')}")
    lines.append(f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"\n📦 VERSIONS:")
    lines.append(f"  Current: {payload.get('current_version', 'unknown')}")
    lines.append(f"  Target: {payload.get('target_version', 'unknown')}")

    if payload.get("level"):
        lines.append(f"\n🔁 LEVEL: {payload['level']}")
    if payload.get("reason"):
        lines.append(f"\n⚠️ REASON:")
        lines.append(f"  {payload['reason']}")
    if payload.get("duration_ms") is not None:
        lines.append(f"\n⏱️ DURATION: {payload['duration_ms'] / 1000:.1f}s")

    lines.append("\n" + "=" * 80)
    return "\n".join(lines)


class LoggingNotificationSink:
    """Console alerts (MVP channel) plus an audit line on the alerts logger."""

    def __init__(self, console: bool = True):
        self.console = console

    def send(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self.console:
            print(format_rollback_alert(event_type, payload))
        logger.info(f"[AUDIT] {event_type}: {json.dumps(payload, default=str, sort_keys=True)}")


class CompositeNotificationSink:
    """Fan out to several sinks; one failing channel does not block the others."""

    def __init__(self, sinks: List[Any]):
        self.sinks = list(sinks)

    def send(self, event_type: str, payload: Dict[str, Any]) -> None:
        for sink in self.sinks:
            try:
                sink.send(event_type, payload)
            except Exception as e:
                logger.error(f"{type(sink).__name__} failed to deliver {event_type}: {e}")


def generate_rollback_report(
    attempts: List[Dict], project: str, output_path: str
) -> str:
    """
    Generate detailed rollback report (JSON).

    Args:
        attempts: List of rollback attempt dicts
        project: Project name
        output_path: Path to save report

    Returns:
        Path to saved report
    """
    report = {
        "project": project,
        "generated_at": datetime.now().isoformat(),
        "total_rollbacks": len(attempts),
        "rollbacks": attempts,
    }

    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)

    return output_path
