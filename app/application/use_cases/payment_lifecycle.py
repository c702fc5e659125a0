from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from app.application.dto.outcome import ErrorKind, Outcome
from app.application.dto.payment_event import PaymentEvent
from app.application.exceptions import PaymentGatewayError, SignatureError
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.payment_gateway import PaymentGatewayPort
from app.application.use_cases.side_effects import SideEffectDispatcher
from app.domain.entities.booking import Booking, BookingStatus


@dataclass(frozen=True)
class CancelResult:
    booking_id: str
    status: BookingStatus
    refunded: bool
    already_withdrawn: bool = False


class PaymentLifecycleUseCase:
    """
    Owns every status transition after creation.

    Transitions are compare-and-set writes against the expected current status,
    and side effects fire only for the caller whose write was applied. Both
    payment confirmation paths (client confirm and gateway webhook) funnel into
    `_mark_paid`.
    """

    _MAX_CANCEL_ROUNDS = 3

    def __init__(
        self,
        store: BookingStorePort,
        payments: PaymentGatewayPort,
        dispatcher: SideEffectDispatcher,
        clock: Callable[[], datetime],
    ) -> None:
        self._store = store
        self._payments = payments
        self._dispatcher = dispatcher
        self._clock = clock
        self._locks: dict[str, list] = {}
        self._lock_lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    @contextmanager
    def _booking_lock(self, booking_id: str):
        """Hold the per-booking lock; the entry is dropped once no caller needs it."""
        with self._lock_lock:
            entry = self._locks.setdefault(booking_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[booking_id]

    def confirm_payment(self, session_ref: str) -> Outcome[Booking]:
        if not session_ref:
            return Outcome.failure(ErrorKind.MISSING_BOOKING_REF, "Missing session id")

        try:
            status = self._payments.get_session_status(session_ref)
        except PaymentGatewayError as e:
            self._logger.error("Session lookup failed", extra={"session_ref": session_ref, "error": str(e)})
            return Outcome.failure(ErrorKind.PAYMENT_ERROR, "Could not verify payment")

        if not status.paid:
            return Outcome.failure(ErrorKind.NOT_PAID, "Payment has not been completed")

        booking_id = status.booking_id or self._booking_id_for_session(session_ref)
        if not booking_id:
            return Outcome.failure(ErrorKind.MISSING_BOOKING_REF, "Payment session carries no booking reference")

        return self._mark_paid(booking_id, session_ref, source="confirm")

    def handle_webhook(self, payload: bytes, signature_header: str | None) -> Outcome[Booking | None]:
        try:
            event = self._payments.parse_webhook(payload, signature_header)
        except SignatureError as e:
            self._logger.warning("Webhook signature verification failed", extra={"error": str(e)})
            return Outcome.failure(ErrorKind.SIGNATURE_ERROR, "Invalid signature")

        if not self._is_completed_payment(event):
            self._logger.info("Ignoring payment event", extra={"event_type": event.type})
            return Outcome.success(None)

        session_ref = event.session_ref
        booking_id = event.booking_id or (self._booking_id_for_session(session_ref) if session_ref else None)
        if not booking_id:
            self._logger.warning(
                "Completed payment without booking reference",
                extra={"event_type": event.type, "session_ref": session_ref},
            )
            return Outcome.failure(ErrorKind.MISSING_BOOKING_REF, "Event carries no booking reference")

        return self._mark_paid(booking_id, session_ref, source="webhook")

    def cancel(self, booking_id: str) -> Outcome[CancelResult]:
        if not booking_id:
            return Outcome.failure(ErrorKind.VALIDATION_ERROR, "Missing booking ID")

        with self._booking_lock(booking_id):
            for _ in range(self._MAX_CANCEL_ROUNDS):
                booking = self._store.get(booking_id)
                if booking is None:
                    return Outcome.failure(ErrorKind.NOT_FOUND, "Booking not found")

                if booking.status.is_terminal:
                    self._logger.info(
                        "Cancel requested for withdrawn booking",
                        extra={"booking_id": booking_id, "status": booking.status.value},
                    )
                    return Outcome.success(
                        CancelResult(
                            booking_id=booking_id,
                            status=booking.status,
                            refunded=booking.status == BookingStatus.REFUNDED,
                            already_withdrawn=True,
                        )
                    )

                if booking.status == BookingStatus.PENDING:
                    outcome = self._cancel_pending(booking)
                else:
                    outcome = self._refund_paid(booking)
                if outcome is not None:
                    return outcome
                # Status moved underneath us (e.g. a webhook marked it paid); re-evaluate.

        self._logger.error("Cancel did not converge", extra={"booking_id": booking_id})
        return Outcome.failure(ErrorKind.SERVER_ERROR, "Server error")

    def _cancel_pending(self, booking: Booking) -> Outcome[CancelResult] | None:
        if booking.payment_session_ref:
            try:
                status = self._payments.get_session_status(booking.payment_session_ref)
            except PaymentGatewayError as e:
                self._logger.error(
                    "Session lookup failed during cancel",
                    extra={"booking_id": booking.id, "error": str(e)},
                )
                return Outcome.failure(ErrorKind.PAYMENT_ERROR, "Could not verify payment status")
            if status.paid:
                # Funds were captured but no confirmation has landed yet.
                paid = self._mark_paid(booking.id, booking.payment_session_ref, source="cancel")
                if not paid.ok:
                    return Outcome.failure(paid.error, paid.message or "Could not record payment")
                return None
            if status.open:
                try:
                    self._payments.expire_session(booking.payment_session_ref)
                except PaymentGatewayError as e:
                    self._logger.error(
                        "Could not close checkout session during cancel",
                        extra={"booking_id": booking.id, "session_ref": booking.payment_session_ref, "error": str(e)},
                    )
                    return Outcome.failure(ErrorKind.PAYMENT_ERROR, "Could not close the checkout session")

        updated = self._store.compare_and_set_status(
            booking.id, BookingStatus.PENDING, BookingStatus.CANCELED, self._clock()
        )
        if updated is None:
            return None

        self._logger.info("Booking canceled", extra={"booking_id": booking.id, "status": updated.status.value})
        self._dispatcher.booking_withdrawn(updated)
        return Outcome.success(CancelResult(booking_id=booking.id, status=updated.status, refunded=False))

    def _refund_paid(self, booking: Booking) -> Outcome[CancelResult] | None:
        if not booking.payment_session_ref:
            self._logger.error("Paid booking has no payment session", extra={"booking_id": booking.id})
            return Outcome.failure(ErrorKind.REFUND_FAILED, "Booking not found or not paid")

        try:
            self._dispatcher.issue_refund(booking)
        except PaymentGatewayError as e:
            self._logger.error("Refund failed", extra={"booking_id": booking.id, "error": str(e)})
            return Outcome.failure(ErrorKind.REFUND_FAILED, "Refund failed")

        updated = self._store.compare_and_set_status(
            booking.id, BookingStatus.PAID, BookingStatus.REFUNDED, self._clock()
        )
        if updated is None:
            return None

        self._logger.info("Booking refunded", extra={"booking_id": booking.id, "status": updated.status.value})
        self._dispatcher.booking_withdrawn(updated)
        return Outcome.success(CancelResult(booking_id=booking.id, status=updated.status, refunded=True))

    def _mark_paid(self, booking_id: str, session_ref: str | None, source: str) -> Outcome[Booking]:
        booking = self._store.get(booking_id)
        if booking is None:
            self._logger.error(
                "Payment received for unknown booking",
                extra={"booking_id": booking_id, "session_ref": session_ref, "reason": source},
            )
            return self._refund_unclaimed(booking_id, session_ref)

        if session_ref and booking.payment_session_ref != session_ref:
            booking = self._store.attach_payment_session(booking_id, session_ref) or booking

        updated = self._store.compare_and_set_status(
            booking_id, BookingStatus.PENDING, BookingStatus.PAID, self._clock()
        )
        if updated is not None:
            self._logger.info(
                "Booking marked as paid",
                extra={"booking_id": booking_id, "status": updated.status.value, "reason": source},
            )
            self._dispatcher.booking_paid(updated)
            return Outcome.success(updated)

        current = self._store.get(booking_id) or booking
        if current.status == BookingStatus.PAID:
            self._logger.info("Payment already recorded", extra={"booking_id": booking_id, "reason": source})
            return Outcome.success(current)

        self._logger.error(
            "Payment received for withdrawn booking",
            extra={"booking_id": booking_id, "status": current.status.value, "reason": source},
        )
        if current.status == BookingStatus.REFUNDED:
            return Outcome.failure(ErrorKind.PAYMENT_ERROR, "Booking is refunded")
        return self._refund_unclaimed(booking_id, session_ref or current.payment_session_ref)

    def _refund_unclaimed(self, booking_id: str, session_ref: str | None) -> Outcome[Booking]:
        """Return money captured after the booking was canceled or purged."""
        if not session_ref:
            self._logger.error("Cannot refund payment without a session", extra={"booking_id": booking_id})
            return Outcome.failure(ErrorKind.REFUND_FAILED, "Payment cannot be matched for refund")
        try:
            self._dispatcher.refund_unclaimed_payment(session_ref, booking_id)
        except PaymentGatewayError as e:
            self._logger.error(
                "Refund of unclaimed payment failed",
                extra={"booking_id": booking_id, "session_ref": session_ref, "error": str(e)},
            )
            return Outcome.failure(ErrorKind.REFUND_FAILED, "Refund failed")
        return Outcome.failure(ErrorKind.PAYMENT_ERROR, "Booking is no longer active; the payment has been refunded")

    def _booking_id_for_session(self, session_ref: str) -> str | None:
        booking = self._store.find_by_session(session_ref)
        return booking.id if booking else None

    @staticmethod
    def _is_completed_payment(event: PaymentEvent) -> bool:
        return event.is_payment_completed and event.session.get("payment_status", "paid") == "paid"
