"""Admin notification emission: a persisted inbox row plus optional email fan-out."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from unipivot_api.core.settings import get_settings
from unipivot_api.models.notification import AdminNotification, AdminNotificationTypeEnum

from .backend import EmailBackend, SMTPConfig, SMTPEmailBackend
from .templates import RenderedTemplate


@dataclass
class NotificationEvent:
    """Representation of a notification that was emitted."""

    notification_type: AdminNotificationTypeEnum
    subject: str
    body_text: str
    recipients: list[str]
    metadata: dict[str, Any]


class AdminNotifier:
    """Best-effort admin alerts. Delivery failures never reach the caller."""

    def __init__(
        self,
        db_session: AsyncSession,
        backend: Optional[EmailBackend] = None,
        *,
        recipients: Sequence[str] | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        # Inbox rows commit on their own session so a failed write never rolls back or
        # expires objects the caller still holds.
        self._inbox_sessions = async_sessionmaker(db_session.bind, expire_on_commit=False, class_=AsyncSession)
        self._backend = backend or self._build_default_backend()
        self._recipients = list(recipients if recipients is not None else settings.admin_notification_emails)
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.notification_timeout_seconds
        self._events: list[NotificationEvent] = []

    @property
    def sent_events(self) -> list[NotificationEvent]:
        return self._events

    async def notify(
        self,
        notification_type: AdminNotificationTypeEnum,
        template: RenderedTemplate,
        *,
        data: dict[str, Any],
    ) -> bool:
        """Emit a notification within the configured timeout; returns False on any failure."""

        try:
            await asyncio.wait_for(self._emit(notification_type, template, data), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Admin notification timed out",
                notification_type=notification_type.value,
                timeout_seconds=self._timeout,
            )
            return False
        except Exception:
            logger.exception("Admin notification failed", notification_type=notification_type.value)
            return False
        return True

    async def _emit(
        self,
        notification_type: AdminNotificationTypeEnum,
        template: RenderedTemplate,
        data: dict[str, Any],
    ) -> None:
        record = AdminNotification(
            type=notification_type.value,
            title=template.subject,
            message=template.text_body,
            data=data,
        )
        async with self._inbox_sessions() as inbox:
            inbox.add(record)
            await inbox.commit()

        delivered: list[str] = []
        if self._backend is not None and self._recipients:
            await self._backend.send_email(
                self._recipients,
                template.subject,
                template.text_body,
                body_html=template.html_body,
            )
            delivered = list(self._recipients)

        self._events.append(
            NotificationEvent(
                notification_type=notification_type,
                subject=template.subject,
                body_text=template.text_body,
                recipients=delivered,
                metadata=data,
            )
        )
        logger.info(
            "Admin notification emitted",
            notification_type=notification_type.value,
            notification_id=str(record.id),
            recipients=len(delivered),
        )

    def _build_default_backend(self) -> Optional[EmailBackend]:
        config = SMTPConfig.from_settings(get_settings())
        return SMTPEmailBackend(config) if config else None
