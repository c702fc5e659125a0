from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime

from app.application.ports.booking_store import BookingStorePort, RateLimitedError, SlotTakenError
from app.domain.entities.booking import Booking, BookingStatus


class MemoryBookingStore(BookingStorePort):
    """
    Booking store guarded by a single process-wide lock.

    Every mutation, including the conflict check that precedes an insert,
    runs while holding the lock, so the store is the single writer for the
    slot invariant.
    """

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.RLock()

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held after every mutation."""
        pass

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)

    def find_by_session(self, session_ref: str) -> Booking | None:
        with self._lock:
            for booking in self._bookings.values():
                if booking.payment_session_ref == session_ref:
                    return booking
            return None

    def list_all(self) -> list[Booking]:
        with self._lock:
            return sorted(self._bookings.values(), key=lambda b: b.start)

    def has_conflict(self, start: datetime, end: datetime) -> bool:
        with self._lock:
            return self._find_conflict(start, end) is not None

    def _find_conflict(self, start: datetime, end: datetime) -> Booking | None:
        for booking in self._bookings.values():
            if booking.holds_slot and booking.overlaps(start, end):
                return booking
        return None

    def count_recent_for_email(self, email: str, since: datetime) -> int:
        with self._lock:
            return self._count_recent(email, since)

    def _count_recent(self, email: str, since: datetime) -> int:
        key = email.strip().lower()
        return sum(
            1
            for booking in self._bookings.values()
            if booking.email.strip().lower() == key and booking.start > since
        )

    def reserve(
        self,
        booking: Booking,
        rate_since: datetime | None = None,
        max_per_email: int | None = None,
    ) -> Booking:
        with self._lock:
            if rate_since is not None and max_per_email is not None:
                count = self._count_recent(booking.email, rate_since)
                if count >= max_per_email:
                    raise RateLimitedError(booking.email, count)
            conflict = self._find_conflict(booking.start, booking.end)
            if conflict is not None:
                raise SlotTakenError(conflict.id)
            self._bookings[booking.id] = booking
            try:
                self._persist()
            except Exception:
                del self._bookings[booking.id]
                raise
            return booking

    def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
        at: datetime | None = None,
    ) -> Booking | None:
        if not expected.can_transition_to(new):
            raise ValueError(f"Transition {expected.value} -> {new.value} is not allowed")
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None or current.status != expected:
                return None
            updated = current.with_status(new, at)
            self._bookings[booking_id] = updated
            self._persist()
            return updated

    def attach_payment_session(self, booking_id: str, session_ref: str) -> Booking | None:
        return self._update(booking_id, payment_session_ref=session_ref)

    def attach_calendar_event(self, booking_id: str, event_ref: str) -> Booking | None:
        return self._update(booking_id, calendar_event_ref=event_ref)

    def _update(self, booking_id: str, **changes) -> Booking | None:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                return None
            updated = replace(current, **changes)
            self._bookings[booking_id] = updated
            self._persist()
            return updated

    def delete_ended_before(self, cutoff: datetime) -> int:
        return self._delete_where(lambda b: b.end < cutoff)

    def delete_pending_created_before(self, cutoff: datetime) -> int:
        return self._delete_where(lambda b: b.status == BookingStatus.PENDING and b.created_at < cutoff)

    def _delete_where(self, predicate) -> int:
        with self._lock:
            doomed = [booking_id for booking_id, b in self._bookings.items() if predicate(b)]
            for booking_id in doomed:
                del self._bookings[booking_id]
            if doomed:
                self._persist()
            return len(doomed)
