"""Mail sending service reached through the command dispatcher."""

from services.mail.commands import REQUEST_HANDLERS, SendEmailCommand, handle_send_email
from services.mail.sender import (
    LoggingMailSender,
    MailMessage,
    MailSender,
    SmtpMailSender,
    build_mail_sender,
)

__all__ = [
    "REQUEST_HANDLERS",
    "LoggingMailSender",
    "MailMessage",
    "MailSender",
    "SendEmailCommand",
    "SmtpMailSender",
    "build_mail_sender",
    "handle_send_email",
]
