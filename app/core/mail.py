"""
Outbound email over SMTP.

``smtplib`` is blocking, so delivery runs in a worker thread to keep the
event loop free.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from app.core.config import Settings

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """Raised when the SMTP server refuses or cannot be reached."""


class SMTPMailer:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, s: Settings) -> SMTPMailer:
        return cls(
            host=s.SMTP_HOST,
            port=s.SMTP_PORT,
            sender=s.MAIL_FROM,
            username=s.SMTP_USERNAME,
            password=s.SMTP_PASSWORD,
            use_tls=s.SMTP_USE_TLS,
        )

    def _build(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = self._build(to, subject, body)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Mail to %s failed: %s", to, exc)
            raise MailDeliveryError(str(exc)) from exc
        logger.info("Mail sent to %s (%s)", to, subject)
