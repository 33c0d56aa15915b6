"""
Outbound notification email over SMTP.

Environment variables
---------------------
NOTIFICATION_EMAIL            Sender account (also the SMTP login).
NOTIFICATION_EMAIL_PASSWORD   SMTP password / app password.
SMTP_HOST                     default: smtp.gmail.com
SMTP_PORT                     default: 465 (implicit TLS)
SMTP_TIMEOUT_SECONDS          default: 30
"""

import asyncio
import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Optional

from app.exceptions import ConfigurationError, MailDeliveryError

logger = logging.getLogger(__name__)

SENDER_NAME = "DealDine"


class SmtpMailer:
    """Sends HTML email through an SMTP-over-SSL server."""

    def __init__(
        self,
        sender: str,
        password: str,
        host: str = "smtp.gmail.com",
        port: int = 465,
        timeout: float = 30.0,
    ):
        self.sender = sender
        self.password = password
        self.host = host
        self.port = port
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "SmtpMailer":
        sender = os.getenv("NOTIFICATION_EMAIL")
        password = os.getenv("NOTIFICATION_EMAIL_PASSWORD")
        if not sender or not password:
            raise ConfigurationError(
                "NOTIFICATION_EMAIL and NOTIFICATION_EMAIL_PASSWORD must be set"
            )
        try:
            port = int(os.getenv("SMTP_PORT", "465"))
            timeout = float(os.getenv("SMTP_TIMEOUT_SECONDS", "30"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid SMTP_PORT or SMTP_TIMEOUT_SECONDS: {e}") from e
        return cls(
            sender=sender,
            password=password,
            host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            port=port,
            timeout=timeout,
        )

    def build_message(self, to_address: str, subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f'"{SENDER_NAME}" <{self.sender}>'
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content("Your email client does not support HTML messages.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
            server.login(self.sender, self.password)
            server.send_message(msg)

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Send one HTML email.

        Raises:
            MailDeliveryError: if the SMTP conversation fails for any reason
        """
        msg = self.build_message(to_address, subject, html_body)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except Exception as e:
            raise MailDeliveryError(f"Failed to send email to {to_address}: {str(e)}") from e
        logger.info(f"Email sent to {to_address}: {subject!r}")
