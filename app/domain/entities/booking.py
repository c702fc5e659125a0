from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELED = "CANCELED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in ALLOWED_TRANSITIONS.get(self, frozenset())


TERMINAL_STATUSES = frozenset({BookingStatus.CANCELED, BookingStatus.REFUNDED})

# Slot-holding statuses; terminal bookings never block an interval.
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.PAID})

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.PAID, BookingStatus.CANCELED}),
    BookingStatus.PAID: frozenset({BookingStatus.REFUNDED}),
    BookingStatus.CANCELED: frozenset(),
    BookingStatus.REFUNDED: frozenset(),
}


@dataclass(frozen=True)
class TreatmentLine:
    name: str
    price: Decimal
    parent: str | None = None

    @property
    def label(self) -> str:
        if self.parent:
            return f"{self.parent} - {self.name}"
        return self.name


@dataclass(frozen=True)
class Booking:
    id: str
    name: str
    email: str
    phone: str
    start: datetime
    end: datetime
    treatments: tuple[TreatmentLine, ...]
    total: Decimal
    created_at: datetime
    status: BookingStatus = BookingStatus.PENDING
    payment_session_ref: str | None = None
    calendar_event_ref: str | None = None
    updated_at: datetime | None = field(default=None, compare=False)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def holds_slot(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap: touching intervals do not conflict."""
        return self.start < end and self.end > start

    def with_status(self, status: BookingStatus, at: datetime | None = None) -> Booking:
        return replace(self, status=status, updated_at=at)
