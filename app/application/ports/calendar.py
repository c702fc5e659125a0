from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class CalendarPort(ABC):
    @abstractmethod
    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
    ) -> str:
        """Create calendar event. Returns event_id."""
        raise NotImplementedError

    @abstractmethod
    def update_event_summary(self, event_id: str, summary: str) -> None:
        """Relabel an existing event.

        Raises CalendarRateLimitError when throttled, ExternalServiceError otherwise.
        """
        raise NotImplementedError
