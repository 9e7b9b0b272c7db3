"""Notification service package."""

from .backend import EmailBackend, InMemoryEmailBackend, SMTPConfig, SMTPEmailBackend
from .service import AdminNotifier, NotificationEvent
from .templates import RenderedTemplate, render_alert_application, render_flagged_claim

__all__ = [
    "AdminNotifier",
    "EmailBackend",
    "InMemoryEmailBackend",
    "NotificationEvent",
    "RenderedTemplate",
    "SMTPConfig",
    "SMTPEmailBackend",
    "render_alert_application",
    "render_flagged_claim",
]
