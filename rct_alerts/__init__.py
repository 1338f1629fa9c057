"""
Email Alert System for Release Control Tower

Sends rollback notifications by email:
- Rollback initiated
- Rollback succeeded
- Rollback failed
"""

__version__ = "1.0.0"

from .email_sender import (
    EmailSender,
    EmailNotificationSink,
    build_rollback_email,
)

__all__ = [
    "EmailSender",
    "EmailNotificationSink",
    "build_rollback_email",
]
