"""Outbound mail senders."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from packages.snap_shared.config import MailSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailMessage:
    """One outbound plain-text message."""

    to: str
    subject: str
    body: str


class MailSender(Protocol):
    """Delivery contract used by mail command handlers."""

    def send(self, message: MailMessage) -> None:
        """Deliver one message or raise."""


class LoggingMailSender:
    """Sender that logs messages instead of delivering them.

    Used whenever no SMTP host is configured; sent messages are kept in
    ``outbox`` for inspection.
    """

    def __init__(self, *, sender: str) -> None:
        self.sender = sender
        self.outbox: list[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.outbox.append(message)
        logger.info(
            "mail delivery skipped; no SMTP host configured",
            extra={"mail_to": message.to, "mail_subject": message.subject},
        )


class SmtpMailSender:
    """Deliver messages through one SMTP relay."""

    def __init__(self, settings: MailSettings) -> None:
        if not settings.smtp_host:
            raise ValueError("mail.smtp_host is required for SMTP delivery")
        self._settings = settings

    def send(self, message: MailMessage) -> None:
        settings = self._settings
        email = EmailMessage()
        email["From"] = settings.sender
        email["To"] = message.to
        email["Subject"] = message.subject
        email.set_content(message.body)

        with smtplib.SMTP(
            settings.smtp_host, settings.smtp_port, timeout=settings.timeout_seconds
        ) as client:
            if settings.smtp_starttls:
                client.starttls()
            if settings.smtp_username and settings.smtp_password is not None:
                client.login(
                    settings.smtp_username, settings.smtp_password.get_secret_value()
                )
            client.send_message(email)
        logger.info("mail delivered", extra={"mail_to": message.to})


def build_mail_sender(settings: MailSettings) -> MailSender:
    """Pick the SMTP sender when a host is configured, else the logging sender."""
    if settings.smtp_host:
        return SmtpMailSender(settings)
    return LoggingMailSender(sender=settings.sender)
