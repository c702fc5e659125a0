from __future__ import annotations

import json
import logging
from datetime import datetime

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.application.exceptions import CalendarRateLimitError, ExternalServiceError
from app.application.ports.calendar import CalendarPort
from app.core.config import settings


CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"}


def error_reasons(error: HttpError) -> set[str]:
    try:
        body = json.loads(error.content.decode("utf-8"))
    except (ValueError, AttributeError):
        return set()
    details = (body.get("error") or {}).get("errors") or []
    return {d.get("reason") for d in details if isinstance(d, dict) and d.get("reason")}


def is_rate_limited(error: HttpError) -> bool:
    status = getattr(error.resp, "status", None)
    if status == 429:
        return True
    return status == 403 and bool(error_reasons(error) & RATE_LIMIT_REASONS)


class GoogleCalendar(CalendarPort):
    def __init__(
        self,
        client_email: str | None = None,
        private_key: str | None = None,
        calendar_id: str | None = None,
        timezone: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        client_email = client_email or settings.GCAL_CLIENT_EMAIL
        private_key = private_key or settings.GCAL_PRIVATE_KEY
        self._calendar_id = calendar_id or settings.GCAL_CALENDAR_ID
        self._timezone = timezone or settings.BUSINESS_TIMEZONE
        self._logger = logging.getLogger(__name__)

        if not (client_email and private_key and self._calendar_id):
            raise ValueError("GCAL_CLIENT_EMAIL, GCAL_PRIVATE_KEY and GCAL_CALENDAR_ID are required for Google Calendar")

        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": client_email,
                "private_key": private_key.replace("\\n", "\n"),
                "token_uri": GOOGLE_TOKEN_URI,
            },
            scopes=CALENDAR_SCOPES,
        )
        http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
        self._service = build("calendar", "v3", http=http, cache_discovery=False)

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
    ) -> str:
        body = {
            "summary": summary,
            "description": description or "",
            "start": {"dateTime": start.isoformat(), "timeZone": self._timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self._timezone},
        }
        request = self._service.events().insert(calendarId=self._calendar_id, body=body)
        data = self._execute(request, "insert")
        event_id = data.get("id")
        if not event_id:
            raise ExternalServiceError("No event ID returned from Google Calendar")

        self._logger.info("Calendar event created", extra={"event_id": event_id})
        return str(event_id)

    def update_event_summary(self, event_id: str, summary: str) -> None:
        request = self._service.events().patch(
            calendarId=self._calendar_id,
            eventId=event_id,
            body={"summary": summary},
        )
        self._execute(request, "patch")
        self._logger.info("Calendar event relabelled", extra={"event_id": event_id, "summary": summary})

    def _execute(self, request, operation: str) -> dict:
        try:
            return request.execute(num_retries=0) or {}
        except HttpError as e:
            if is_rate_limited(e):
                raise CalendarRateLimitError(f"Google Calendar {operation} throttled: {e}") from e
            raise ExternalServiceError(f"Google Calendar {operation} failed: {e}") from e
        except (httplib2.HttpLib2Error, OSError) as e:
            raise ExternalServiceError(f"Google Calendar {operation} failed: {e}") from e
