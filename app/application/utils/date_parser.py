from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_start_instant(value: str, default_tz: ZoneInfo) -> datetime | None:
    """
    Parse an ISO 8601 start time into an aware UTC datetime.

    A trailing "Z" is accepted. Naive values are interpreted in the business
    timezone. Returns None if the string is not a valid ISO timestamp.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed.astimezone(timezone.utc)
