from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from zoneinfo import ZoneInfo

from app.application.dto.outcome import ErrorKind, Outcome
from app.application.exceptions import PaymentGatewayError
from app.application.ports.booking_store import BookingStorePort, RateLimitedError, SlotTakenError
from app.application.ports.payment_gateway import CheckoutSession, PaymentGatewayPort
from app.application.use_cases.reaper import StaleHoldReaper
from app.application.use_cases.side_effects import SideEffectDispatcher
from app.application.utils.date_parser import parse_start_instant
from app.application.utils.duration_resolver import DurationResolver
from app.application.utils.rate_limiter import BookingRateLimiter
from app.domain.entities.booking import Booking, BookingStatus, TreatmentLine


@dataclass(frozen=True)
class CreateBookingCommand:
    name: str
    email: str
    phone: str
    start: str
    treatments: list[dict[str, Any]]
    total: Any


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime


class BookingUseCase:
    def __init__(
        self,
        store: BookingStorePort,
        resolver: DurationResolver,
        rate_limiter: BookingRateLimiter,
        reaper: StaleHoldReaper,
        dispatcher: SideEffectDispatcher,
        payments: PaymentGatewayPort,
        timezone: ZoneInfo,
        clock: Callable[[], datetime],
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._rate_limiter = rate_limiter
        self._reaper = reaper
        self._dispatcher = dispatcher
        self._payments = payments
        self._timezone = timezone
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def list_slots(self) -> list[Slot]:
        self._reaper.run_quietly()
        return [Slot(start=b.start, end=b.end) for b in self._store.list_all() if b.holds_slot]

    def get(self, booking_id: str) -> Outcome[Booking]:
        booking = self._store.get(booking_id)
        if booking is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Booking not found")
        return Outcome.success(booking)

    def get_by_session(self, session_ref: str) -> Outcome[Booking]:
        booking = self._store.find_by_session(session_ref)
        if booking is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "No booking found for this payment session")
        return Outcome.success(booking)

    def create(self, command: CreateBookingCommand) -> Outcome[Booking]:
        self._reaper.run_quietly()

        now = self._clock()
        validated = self._validate(command, now)
        if not validated.ok:
            return validated

        draft = validated.value
        try:
            booking = self._store.reserve(
                draft,
                rate_since=self._rate_limiter.window_start(),
                max_per_email=self._rate_limiter.max_bookings,
            )
        except RateLimitedError:
            self._logger.info("Booking rate limit hit", extra={"reason": "rate_limit"})
            return Outcome.failure(
                ErrorKind.RATE_LIMIT_EXCEEDED,
                f"You already have {self._rate_limiter.max_bookings} bookings in the past 24 hours. "
                "Please contact us if you need more.",
            )
        except SlotTakenError as e:
            self._logger.info(
                "Slot conflict",
                extra={"reason": "slot_conflict", "conflicting_id": e.conflicting_id},
            )
            return Outcome.failure(
                ErrorKind.SLOT_CONFLICT,
                "This time slot is already taken. Please choose another.",
            )
        except Exception as e:
            self._logger.exception("Failed to persist booking", extra={"error": str(e)})
            return Outcome.failure(ErrorKind.SERVER_ERROR, "Server error")

        self._logger.info(
            "Booking created",
            extra={"booking_id": booking.id, "status": booking.status.value},
        )
        booking = self._dispatcher.booking_created(booking)
        return Outcome.success(booking)

    def start_checkout(self, booking_id: str, origin: str) -> Outcome[CheckoutSession]:
        booking = self._store.get(booking_id)
        if booking is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Booking not found")
        if booking.status != BookingStatus.PENDING:
            return Outcome.failure(
                ErrorKind.VALIDATION_ERROR,
                f"Booking is {booking.status.value.lower()} and cannot be paid for",
            )

        try:
            session = self._payments.create_checkout_session(booking, origin)
        except PaymentGatewayError as e:
            self._logger.error(
                "Checkout session creation failed",
                extra={"booking_id": booking.id, "error": str(e)},
            )
            return Outcome.failure(ErrorKind.PAYMENT_ERROR, "Could not start checkout")

        self._store.attach_payment_session(booking.id, session.session_ref)
        self._logger.info(
            "Checkout session attached",
            extra={"booking_id": booking.id, "session_ref": session.session_ref},
        )
        return Outcome.success(session)

    def _validate(self, command: CreateBookingCommand, now: datetime) -> Outcome[Booking]:
        name = (command.name or "").strip()
        email = (command.email or "").strip()
        phone = (command.phone or "").strip()
        if not (name and email and phone and command.start) or not isinstance(command.treatments, list):
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "All fields required.")
        if "@" not in email:
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "A valid email address is required.")
        if not command.treatments:
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Select at least one treatment.")

        start = parse_start_instant(command.start, self._timezone)
        if start is None:
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Start time must be an ISO 8601 timestamp.")
        if start < now:
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Start time must be in the future.")

        lines: list[TreatmentLine] = []
        for raw in command.treatments:
            line = _parse_treatment(raw)
            if line is None:
                return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Each treatment needs a name and a price.")
            lines.append(line)

        total = _to_decimal(command.total)
        if total is None or total != sum((t.price for t in lines), Decimal("0")):
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Total does not match the selected treatments.")

        minutes = self._resolver.total_minutes(t.name for t in lines)
        if minutes <= 0:
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Selected treatments have no duration.")

        return Outcome.success(
            Booking(
                id=uuid.uuid4().hex,
                name=name,
                email=email,
                phone=phone,
                start=start,
                end=start + timedelta(minutes=minutes),
                treatments=tuple(lines),
                total=total,
                created_at=now,
            )
        )


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip().lstrip("£"))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount.quantize(Decimal("0.01"))


def _parse_treatment(raw: Any) -> TreatmentLine | None:
    if not isinstance(raw, dict):
        return None
    name = str(raw.get("name") or "").strip()
    price = _to_decimal(raw.get("price"))
    if not name or price is None:
        return None
    parent = raw.get("parent")
    return TreatmentLine(name=name, price=price, parent=str(parent).strip() if parent else None)
