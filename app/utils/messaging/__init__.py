"""Messaging utilities (email, push notifications)."""

from .email import (
    send_email_via_ses,
    send_invitation_email,
    build_invitation_url,
)
from .push import send_push, send_push_notification, build_push_payload

__all__ = [
    # Email
    "send_email_via_ses",
    "send_invitation_email",
    "build_invitation_url",
    # Push
    "send_push",
    "send_push_notification",
    "build_push_payload",
]
