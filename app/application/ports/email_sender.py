from __future__ import annotations

from abc import ABC, abstractmethod


class EmailSenderPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, html: str) -> None:
        """Deliver an HTML email. Raises ExternalServiceError on failure."""
        raise NotImplementedError
