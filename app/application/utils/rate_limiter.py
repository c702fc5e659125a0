from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from app.application.ports.booking_store import BookingStorePort


class BookingRateLimiter:
    """
    Per-email abuse guard.

    The window is keyed on each booking's scheduled start, not on when it was
    created, so future-dated bookings always count against the limit. The
    enforcing count runs inside `BookingStorePort.reserve` under the same lock
    as the slot check; `window_start` and `max_bookings` feed it.
    """

    def __init__(
        self,
        store: BookingStorePort,
        clock: Callable[[], datetime],
        max_bookings: int = 3,
        window_hours: int = 24,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_bookings = max_bookings
        self._window = timedelta(hours=window_hours)

    @property
    def max_bookings(self) -> int:
        return self._max_bookings

    def window_start(self) -> datetime:
        return self._clock() - self._window

    def recent_count(self, email: str) -> int:
        return self._store.count_recent_for_email(email, self.window_start())

    def is_exceeded(self, email: str) -> bool:
        return self.recent_count(email) >= self._max_bookings
