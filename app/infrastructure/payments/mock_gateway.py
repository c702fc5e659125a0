from __future__ import annotations

import hmac
import json
import logging
import uuid

from app.application.dto.payment_event import PaymentEvent
from app.application.exceptions import PaymentGatewayError, SignatureError
from app.application.ports.payment_gateway import CheckoutSession, PaymentGatewayPort, PaymentSessionStatus
from app.domain.entities.booking import Booking


def sign_payload(payload: bytes, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode("utf-8"), payload, "sha256").hexdigest()


class MockPaymentGateway(PaymentGatewayPort):
    def __init__(self, webhook_secret: str = "mock_webhook_secret") -> None:
        self._webhook_secret = webhook_secret
        self._sessions: dict[str, dict[str, object]] = {}
        self.refund_calls: list[tuple[str, str]] = []
        self.expire_calls: list[str] = []
        self.fail_refunds = False
        self.fail_lookups = False
        self._logger = logging.getLogger(__name__)

    def create_checkout_session(self, booking: Booking, origin: str) -> CheckoutSession:
        session_ref = f"cs_mock_{uuid.uuid4().hex[:12]}"
        self._sessions[session_ref] = {"booking_id": booking.id, "paid": False, "open": True}
        self._logger.info("Mock checkout session created", extra={"session_ref": session_ref, "booking_id": booking.id})
        return CheckoutSession(session_ref=session_ref, url=f"{origin.rstrip('/')}/mock-checkout/{session_ref}")

    def register_session(self, session_ref: str, booking_id: str | None, paid: bool = False) -> None:
        self._sessions[session_ref] = {"booking_id": booking_id, "paid": paid, "open": not paid}

    def mark_paid(self, session_ref: str) -> None:
        self._sessions[session_ref].update(paid=True, open=False)

    def get_session_status(self, session_ref: str) -> PaymentSessionStatus:
        if self.fail_lookups:
            raise PaymentGatewayError("Mock gateway unavailable")
        session = self._sessions.get(session_ref)
        if session is None:
            raise PaymentGatewayError(f"No such checkout session: {session_ref}")
        return PaymentSessionStatus(
            session_ref=session_ref,
            paid=bool(session["paid"]),
            booking_id=session["booking_id"],
            payment_ref=f"pi_{session_ref}",
            open=bool(session["open"]),
        )

    def expire_session(self, session_ref: str) -> None:
        session = self._sessions.get(session_ref)
        if session is None or not session["open"]:
            raise PaymentGatewayError(f"Checkout session {session_ref} is not open")
        session["open"] = False
        self.expire_calls.append(session_ref)

    def refund(self, session_ref: str, idempotency_key: str) -> str:
        if self.fail_refunds:
            raise PaymentGatewayError("Mock refund declined")
        self.refund_calls.append((session_ref, idempotency_key))
        return f"re_mock_{len(self.refund_calls)}"

    def parse_webhook(self, payload: bytes, signature_header: str | None) -> PaymentEvent:
        if not signature_header:
            raise SignatureError("Missing signature header")
        expected = sign_payload(payload, self._webhook_secret)
        if not hmac.compare_digest(expected, signature_header):
            raise SignatureError("Signature mismatch")
        return PaymentEvent.model_validate(json.loads(payload.decode("utf-8")))
