"""
Test email notifications - template rendering and SMTP delivery.

Run: pytest tools/testing/test_email_alerts.py
"""

import smtplib
from unittest.mock import Mock, patch

import pytest

from rct_alerts.email_sender import EmailNotificationSink, EmailSender, build_rollback_email
from rct_core.errors import NotificationDeliveryError

PAYLOAD = {
    "deployment_id": "production#1",
    "environment": "production",
    "current_version": "v2.1.0",
    "target_version": "v2.0.3",
    "level": "full",
    "duration_ms": 95000,
}


def make_sender():
    return EmailSender(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="bot@example.com",
        smtp_password="secret",
    )


def test_rollback_email_renders_template():
    email = build_rollback_email(make_sender(), "shop", "rollback_succeeded", PAYLOAD)

    assert email["subject"] == "✅ Rollback Succeeded - shop production"
    assert "v2.0.3" in email["html_body"]
    assert "95.0s" in email["html_body"]
    assert "Level: full" in email["plain_body"]


def test_send_email_uses_starttls_and_login():
    sender = make_sender()

    with patch("rct_alerts.email_sender.smtplib.SMTP") as smtp_class:
        server = smtp_class.return_value.__enter__.return_value
        ok = sender.send_email("oncall@example.com", "subject", "<p>hi</p>", "hi")

    assert ok is True
    smtp_class.assert_called_once_with("smtp.example.com", 587)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("bot@example.com", "secret")
    server.send_message.assert_called_once()


def test_send_email_returns_false_on_auth_failure():
    sender = make_sender()

    with patch("rct_alerts.email_sender.smtplib.SMTP") as smtp_class:
        server = smtp_class.return_value.__enter__.return_value
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        ok = sender.send_email("oncall@example.com", "subject", "<p>hi</p>")

    assert ok is False


def test_notification_sink_sends_to_every_recipient():
    sender = Mock()
    sender.render_template.return_value = "<html></html>"
    sender.send_email.return_value = True
    sink = EmailNotificationSink(sender, ["a@example.com", "b@example.com"], project="shop")

    sink.send("rollback_failed", dict(PAYLOAD, reason="Stage rollback failed: x"))

    recipients = [c.kwargs["to_email"] for c in sender.send_email.call_args_list]
    assert recipients == ["a@example.com", "b@example.com"]
    assert sender.send_email.call_args.kwargs["subject"].startswith("🚨 Rollback Failed")


def test_notification_sink_raises_when_delivery_fails():
    sender = Mock()
    sender.render_template.return_value = "<html></html>"
    sender.send_email.side_effect = [True, False]
    sink = EmailNotificationSink(sender, ["a@example.com", "b@example.com"])

    with pytest.raises(NotificationDeliveryError) as exc_info:
        sink.send("rollback_initiated", PAYLOAD)

    assert "b@example.com" in str(exc_info.value)


def test_notification_sink_without_recipients_is_a_no_op():
    sender = Mock()

    EmailNotificationSink(sender, []).send("rollback_initiated", PAYLOAD)

    sender.send_email.assert_not_called()
