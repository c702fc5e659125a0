from __future__ import annotations

import logging
from datetime import datetime

from app.application.ports.calendar import CalendarPort


class MockCalendar(CalendarPort):
    def __init__(self) -> None:
        self.events: dict[str, dict[str, object]] = {}
        self.summary_updates: list[tuple[str, str]] = []
        self._logger = logging.getLogger(__name__)

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
    ) -> str:
        event_id = f"mock_event_{len(self.events) + 1}"
        self.events[event_id] = {"start": start, "end": end, "summary": summary, "description": description}
        self._logger.info(
            "Mock calendar event created",
            extra={
                "event_id": event_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "summary": summary,
            },
        )
        return event_id

    def update_event_summary(self, event_id: str, summary: str) -> None:
        self.summary_updates.append((event_id, summary))
        if event_id in self.events:
            self.events[event_id]["summary"] = summary
        self._logger.info("Mock calendar event relabelled", extra={"event_id": event_id, "summary": summary})
