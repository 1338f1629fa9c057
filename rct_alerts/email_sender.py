"""
Email sender with SMTP integration.
Supports HTML emails with plain text fallback.
"""

import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List
from jinja2 import Environment, FileSystemLoader

from rct_core.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)

EVENT_TITLES = {
    "rollback_initiated": "Rollback Initiated",
    "rollback_succeeded": "Rollback Succeeded",
    "rollback_failed": "Rollback Failed",
}

EVENT_ICONS = {
    "rollback_initiated": "⚠️",
    "rollback_succeeded": "✅",
    "rollback_failed": "🚨",
}


class EmailSender:
    """
    SMTP email sender with template support.

    Supports:
    - HTML emails with Jinja2 templates
    - Plain text fallback
    - STARTTLS SMTP servers
    """

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_email: str = None,
    ):
        """
        Args:
            smtp_host: SMTP server hostname
            smtp_port: SMTP port (587 for TLS)
            smtp_user: SMTP username/email
            smtp_password: SMTP password or app password
            from_email: From email address (defaults to smtp_user)
        """
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user

        template_dir = Path(__file__).parent / "templates"
        self.jinja_env = Environment(loader=FileSystemLoader(str(template_dir)))

        logger.info(f"EmailSender initialized: {smtp_host}:{smtp_port}")

    def send_email(
        self, to_email: str, subject: str, html_body: str, plain_body: str = None
    ) -> bool:
        """
        Send an email.

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.from_email
            msg["To"] = to_email
            msg["Date"] = datetime.utcnow().strftime("%a, %d %b %Y %H:%M:%S +0000")

            if plain_body:
                msg.attach(MIMEText(plain_body, "plain"))
            msg.attach(MIMEText(html_body, "html"))

            logger.info(f"Connecting to {self.smtp_host}:{self.smtp_port}")

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent successfully to {to_email}: {subject}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed: {e}")
            return False

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error: {e}")
            return False

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render Jinja2 template with context."""
        template = self.jinja_env.get_template(template_name)
        return template.render(**context)


def build_rollback_email(
    sender: EmailSender, project: str, event_type: str, payload: Dict[str, Any]
) -> Dict[str, str]:
    """Subject, HTML and plain-text bodies for one rollback event."""
    title = EVENT_TITLES.get(event_type, event_type.replace("_", " ").title())
    icon = EVENT_ICONS.get(event_type, "📊")
    environment = payload.get("environment") or "unknown"

    context = {
        "project": project,
        "title": title,
        "icon": icon,
        "event_type": event_type,
        "environment": environment,
        "deployment_id": payload.get("deployment_id", "unknown"),
        "current_version": payload.get("current_version", "unknown"),
        "target_version": payload.get("target_version", "unknown"),
        "level": payload.get("level"),
        "reason": payload.get("reason"),
        "duration_seconds": (
            payload["duration_ms"] / 1000 if payload.get("duration_ms") is not None else None
        ),
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    }

    html_body = sender.render_template("rollback_event.html", context)

    plain_lines = [
        f"{icon} {title.upper()} - {project}",
        "",
        f"Environment: {environment}",
        f"Deployment: {context['deployment_id']}",
        f"Version: {context['current_version']} -> {context['target_version']}",
    ]
    if context["level"]:
        plain_lines.append(f"Level: {context['level']}")
    if context["reason"]:
        plain_lines.append(f"Reason: {context['reason']}")
    if context["duration_seconds"] is not None:
        plain_lines.append(f"Duration: {context['duration_seconds']:.1f}s")
    plain_lines.extend(["", f"Time: {context['timestamp']}"])

    return {
        "subject": f"{icon} {title} - {project} {environment}",
        "html_body": html_body,
        "plain_body": "\n".join(plain_lines),
    }


class EmailNotificationSink:
    """Send every rollback notification to a list of recipients."""

    def __init__(self, sender: EmailSender, recipients: List[str], project: str = ""):
        self.sender = sender
        self.recipients = list(recipients)
        self.project = project

    def send(self, event_type: str, payload: Dict[str, Any]) -> None:
        if not self.recipients:
            return

        email = build_rollback_email(self.sender, self.project, event_type, payload)
        failed = [
            recipient
            for recipient in self.recipients
            if not self.sender.send_email(to_email=recipient, **email)
        ]
        if failed:
            raise NotificationDeliveryError(
                f"Failed to email {event_type} to {', '.join(failed)}"
            )
