from __future__ import annotations

import logging

from app.application.exceptions import ExternalServiceError
from app.application.ports.email_sender import EmailSenderPort


class MockEmailSender(EmailSenderPort):
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail = False
        self._logger = logging.getLogger(__name__)

    def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise ExternalServiceError("Mock email outage")
        self.sent.append({"to": to, "subject": subject, "html": html})
        self._logger.info("Mock email sent", extra={"subject": subject})
