from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.application.exceptions import ExternalServiceError
from app.application.ports.email_sender import EmailSenderPort
from app.core.config import settings


class SmtpEmailSender(EmailSenderPort):
    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        from_address: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._host = host or settings.SMTP_HOST
        self._port = port or settings.SMTP_PORT
        self._username = username or settings.SMTP_USER
        self._password = password or settings.SMTP_PASS
        self._from_address = from_address or settings.BUSINESS_EMAIL
        self._timeout = timeout or settings.SMTP_TIMEOUT_SECONDS
        self._logger = logging.getLogger(__name__)

        if not self._host:
            raise ValueError("SMTP_HOST is required for SMTP email delivery")

    def send(self, to: str, subject: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["From"] = self._from_address
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html"))

        context = ssl.create_default_context()
        try:
            if self._port == 465:
                server = smtplib.SMTP_SSL(self._host, self._port, context=context, timeout=self._timeout)
            else:
                server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
            with server:
                if self._port != 465:
                    server.starttls(context=context)
                if self._username and self._password:
                    server.login(self._username, self._password)
                server.sendmail(self._from_address, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise ExternalServiceError(f"SMTP send failed: {e}") from e

        self._logger.info("Email sent", extra={"subject": subject})
