"""Mail commands and their dispatcher handlers."""

from __future__ import annotations

from dataclasses import dataclass

from packages.snap_shared.messagebus import Request

from .sender import MailMessage, MailSender


@dataclass(frozen=True)
class SendEmailCommand(Request):
    """Send one plain-text email."""

    to: str
    subject: str
    body: str


def handle_send_email(command: SendEmailCommand, mail_sender: MailSender) -> None:
    """Deliver the command's message through the configured sender."""
    if not command.to.strip():
        raise ValueError("email recipient must not be blank")
    mail_sender.send(
        MailMessage(to=command.to, subject=command.subject, body=command.body)
    )


REQUEST_HANDLERS = {
    SendEmailCommand: handle_send_email,
}
