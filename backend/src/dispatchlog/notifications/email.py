"""SMTP email sender.

Delivers notification mail through the configured relay. Port 465 uses
implicit TLS; any other port upgrades with STARTTLS when the server offers it.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..config import Settings
from ..tasks.errors import ExternalSideEffectError
from .ports import EmailMessage, EmailSenderPort

logger = logging.getLogger(__name__)


class SmtpEmailSender(EmailSenderPort):
    """EmailSenderPort backed by smtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 30,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailSender":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.mail_sender,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    def _build(self, message: EmailMessage) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['From'] = self.sender
        msg['To'] = message.to
        msg['Subject'] = message.subject

        if message.text:
            msg.attach(MIMEText(message.text, 'plain'))
        msg.attach(MIMEText(message.html, 'html'))
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.ehlo()
        if server.has_extn('starttls'):
            server.starttls()
            server.ehlo()
        return server

    def send(self, message: EmailMessage) -> None:
        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(self._build(message))
        except (smtplib.SMTPException, OSError) as e:
            raise ExternalSideEffectError(f"SMTP delivery to {message.to} failed: {e}") from e

        logger.info(
            f"Email sent: {message.subject}",
            extra={"recipient": message.to, "channel": "email"}
        )
