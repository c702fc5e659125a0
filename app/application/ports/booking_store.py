from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.booking import Booking, BookingStatus


class RateLimitedError(RuntimeError):
    """Raised by `reserve` when the email already holds the maximum number of bookings in the window."""

    def __init__(self, email: str, count: int) -> None:
        super().__init__(f"{count} recent bookings for {email}")
        self.email = email
        self.count = count


class SlotTakenError(RuntimeError):
    """Raised by `reserve` when the proposed interval overlaps a slot-holding booking."""

    def __init__(self, conflicting_id: str) -> None:
        super().__init__(f"Slot overlaps booking {conflicting_id}")
        self.conflicting_id = conflicting_id


class BookingStorePort(ABC):
    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_session(self, session_ref: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> list[Booking]:
        """All stored bookings ordered by start ascending."""
        raise NotImplementedError

    @abstractmethod
    def has_conflict(self, start: datetime, end: datetime) -> bool:
        """True if a slot-holding booking satisfies `existing.start < end and existing.end > start`."""
        raise NotImplementedError

    @abstractmethod
    def count_recent_for_email(self, email: str, since: datetime) -> int:
        """Bookings for email whose scheduled start is after `since`."""
        raise NotImplementedError

    @abstractmethod
    def reserve(
        self,
        booking: Booking,
        rate_since: datetime | None = None,
        max_per_email: int | None = None,
    ) -> Booking:
        """
        Atomically check the per-email limit and the booking's interval, then insert it.

        When `rate_since` and `max_per_email` are given, raises RateLimitedError if the
        email already has `max_per_email` bookings starting after `rate_since`.
        Raises SlotTakenError if the interval is no longer free.
        """
        raise NotImplementedError

    @abstractmethod
    def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
        at: datetime | None = None,
    ) -> Booking | None:
        """
        Move the booking to `new` only if its current status is `expected`.
        Returns the updated booking, or None if the status did not match.
        """
        raise NotImplementedError

    @abstractmethod
    def attach_payment_session(self, booking_id: str, session_ref: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def attach_calendar_event(self, booking_id: str, event_ref: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def delete_ended_before(self, cutoff: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    def delete_pending_created_before(self, cutoff: datetime) -> int:
        raise NotImplementedError
