"""Email delivery for admin alerts.

Admin alerts go to a small fixed distribution list, so a backend sends one
message addressed to every recipient rather than one message per address.
"""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Optional, Protocol, Sequence

from unipivot_api.core.settings import Settings


class EmailBackend(Protocol):
    async def send_email(
        self,
        recipients: Sequence[str],
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        ...


def compose_message(
    recipients: Sequence[str],
    subject: str,
    body_text: str,
    body_html: str | None = None,
    *,
    sender: str | None = None,
) -> EmailMessage:
    message = EmailMessage()
    if sender:
        message["From"] = sender
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message.set_content(body_text)
    if body_html:
        message.add_alternative(body_html, subtype="html")
    return message


@dataclass(frozen=True)
class SMTPConfig:
    host: str
    sender_email: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["SMTPConfig"]:
        """None when SMTP is not configured, which disables email delivery."""

        if not settings.smtp_host or not settings.smtp_sender_email:
            return None
        return cls(
            host=settings.smtp_host,
            sender_email=settings.smtp_sender_email,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )


class SMTPEmailBackend:
    """smtplib delivery, run in a worker thread so the event loop never blocks."""

    def __init__(self, config: SMTPConfig) -> None:
        self._config = config

    async def send_email(
        self,
        recipients: Sequence[str],
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        message = compose_message(recipients, subject, body_text, body_html, sender=self._config.sender_email)
        await asyncio.to_thread(self._deliver, message)

    def _deliver(self, message: EmailMessage) -> None:
        config = self._config
        with smtplib.SMTP(config.host, config.port, timeout=10) as smtp:
            if config.use_tls:
                smtp.starttls()
            if config.username and config.password:
                smtp.login(config.username, config.password)
            smtp.send_message(message)


@dataclass
class InMemoryEmailBackend:
    """Keeps composed messages for assertions in tests."""

    sent_messages: list[EmailMessage] = field(default_factory=list)

    async def send_email(
        self,
        recipients: Sequence[str],
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        self.sent_messages.append(compose_message(recipients, subject, body_text, body_html))
