"""Outbound delivery channels for client notifications."""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from components.core import exceptions
from components.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Recipient:
    client_id: int
    email: str
    full_name: str = ""
    mobile: Optional[str] = None


class NotificationChannel:
    """Accepts a message for a client and attempts delivery."""

    async def send(self, recipient: Recipient, subject: str, body: str) -> None:
        raise NotImplementedError


class LogNotificationChannel(NotificationChannel):
    """Writes messages to the log; used when no SMTP server is configured."""

    async def send(self, recipient: Recipient, subject: str, body: str) -> None:
        logger.info("Notification to client %s <%s>: %s | %s", recipient.client_id, recipient.email, subject, body)


class SmtpNotificationChannel(NotificationChannel):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=30) as smtp:
            smtp.starttls()
            if self.settings.SMTP_USER:
                smtp.login(self.settings.SMTP_USER, self.settings.SMTP_PASSWORD or "")
            smtp.send_message(message)

    async def send(self, recipient: Recipient, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = f'"{self.settings.FIRM_NAME}" <{self.settings.SMTP_SENDER or self.settings.SMTP_USER}>'
        message["To"] = recipient.email
        message["Subject"] = subject
        message.set_content(body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise exceptions.DependencyError(f"Email delivery to {recipient.email} failed") from exc


def build_channel(settings: Optional[Settings] = None) -> NotificationChannel:
    settings = settings or get_settings()
    if settings.SMTP_HOST:
        return SmtpNotificationChannel(settings)
    return LogNotificationChannel()
