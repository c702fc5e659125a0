from __future__ import annotations

import logging
import time
from typing import Callable
from zoneinfo import ZoneInfo

from app.application.exceptions import CalendarRateLimitError, ExternalServiceError
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.calendar import CalendarPort
from app.application.ports.email_sender import EmailSenderPort
from app.application.ports.payment_gateway import PaymentGatewayPort
from app.application.utils import email_templates
from app.application.utils.retry import call_with_backoff
from app.domain.entities.booking import Booking, BookingStatus


def calendar_summary(booking: Booking) -> str:
    base = f"Appointment with {booking.name}"
    if booking.status == BookingStatus.PENDING:
        return base
    return f"[{booking.status.value}] {base}"


def calendar_description(booking: Booking) -> str:
    lines = [f"{t.label} – £{t.price:.2f}" for t in booking.treatments]
    lines.append(f"Total: £{booking.total:.2f}")
    lines.append(f"Client: {booking.name} ({booking.email}, {booking.phone})")
    lines.append(f"Booking ID: {booking.id}")
    return "\n".join(lines)


class SideEffectDispatcher:
    """
    Runs collaborator calls attached to booking transitions.

    Email and calendar work is best-effort: failures are logged and never
    propagate. Refunds are critical and raise PaymentGatewayError to the caller.
    """

    def __init__(
        self,
        store: BookingStorePort,
        calendar: CalendarPort,
        email: EmailSenderPort,
        payments: PaymentGatewayPort,
        business_name: str,
        timezone: ZoneInfo,
        manager_email: str | None = None,
        calendar_max_attempts: int = 3,
        calendar_backoff_seconds: float = 0.5,
        calendar_backoff_cap_seconds: float = 4.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._calendar = calendar
        self._email = email
        self._payments = payments
        self._business_name = business_name
        self._timezone = timezone
        self._manager_email = manager_email
        self._calendar_max_attempts = calendar_max_attempts
        self._calendar_backoff_seconds = calendar_backoff_seconds
        self._calendar_backoff_cap_seconds = calendar_backoff_cap_seconds
        self._sleep = sleep
        self._logger = logging.getLogger(__name__)

    def booking_created(self, booking: Booking) -> Booking:
        event_id = self._best_effort(
            "calendar insert",
            booking,
            lambda: self._with_calendar_retry(
                "calendar insert",
                lambda: self._calendar.create_event(
                    start=booking.start,
                    end=booking.end,
                    summary=calendar_summary(booking),
                    description=calendar_description(booking),
                ),
            ),
        )
        if event_id:
            booking = self._store.attach_calendar_event(booking.id, event_id) or booking

        confirmation = email_templates.customer_confirmation(booking, self._business_name, self._timezone)
        self._send(booking, booking.email, confirmation)
        if self._manager_email:
            self._send(booking, self._manager_email, email_templates.manager_notification(booking, self._timezone))
        return booking

    def booking_paid(self, booking: Booking) -> None:
        self._relabel(booking)

    def booking_withdrawn(self, booking: Booking) -> None:
        self._relabel(booking)
        notice = email_templates.withdrawal_notice(
            booking,
            self._business_name,
            self._timezone,
            refunded=booking.status == BookingStatus.REFUNDED,
        )
        self._send(booking, booking.email, notice)

    def issue_refund(self, booking: Booking) -> str:
        if not booking.payment_session_ref:
            raise ValueError(f"Booking {booking.id} has no payment session to refund")
        refund_id = self._payments.refund(
            booking.payment_session_ref,
            idempotency_key=f"refund-{booking.id}",
        )
        self._logger.info(
            "Refund issued",
            extra={"booking_id": booking.id, "session_ref": booking.payment_session_ref, "refund_id": refund_id},
        )
        return refund_id

    def refund_unclaimed_payment(self, session_ref: str, booking_id: str | None) -> str:
        """Refund a payment captured for a booking that was withdrawn or purged before it landed."""
        refund_id = self._payments.refund(
            session_ref,
            idempotency_key=f"refund-{booking_id or session_ref}",
        )
        self._logger.warning(
            "Refunded payment for inactive booking",
            extra={"booking_id": booking_id, "session_ref": session_ref, "refund_id": refund_id},
        )
        return refund_id

    def _relabel(self, booking: Booking) -> None:
        if not booking.calendar_event_ref:
            self._logger.info("No calendar record to relabel", extra={"booking_id": booking.id})
            return
        event_id = booking.calendar_event_ref
        summary = calendar_summary(booking)
        self._best_effort(
            "calendar relabel",
            booking,
            lambda: self._with_calendar_retry(
                "calendar relabel",
                lambda: self._calendar.update_event_summary(event_id, summary),
            ),
        )

    def _send(self, booking: Booking, to: str, message: email_templates.EmailMessage) -> None:
        self._best_effort("email", booking, lambda: self._email.send(to, message.subject, message.html))

    def _with_calendar_retry(self, operation: str, func):
        return call_with_backoff(
            func,
            retry_on=CalendarRateLimitError,
            max_attempts=self._calendar_max_attempts,
            backoff_seconds=self._calendar_backoff_seconds,
            max_backoff_seconds=self._calendar_backoff_cap_seconds,
            sleep=self._sleep,
            operation=operation,
        )

    def _best_effort(self, operation: str, booking: Booking, func):
        try:
            return func()
        except ExternalServiceError as e:
            self._logger.error(
                "Side effect failed",
                extra={"booking_id": booking.id, "reason": operation, "error": str(e)},
            )
        except Exception as e:
            self._logger.exception(
                "Unexpected side effect failure",
                extra={"booking_id": booking.id, "reason": operation, "error": str(e)},
            )
        return None
