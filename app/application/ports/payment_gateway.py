from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.application.dto.payment_event import PaymentEvent
from app.domain.entities.booking import Booking


@dataclass(frozen=True)
class CheckoutSession:
    session_ref: str
    url: str | None


@dataclass(frozen=True)
class PaymentSessionStatus:
    session_ref: str
    paid: bool
    booking_id: str | None
    payment_ref: str | None = None
    open: bool = False


class PaymentGatewayPort(ABC):
    @abstractmethod
    def create_checkout_session(self, booking: Booking, origin: str) -> CheckoutSession:
        raise NotImplementedError

    @abstractmethod
    def get_session_status(self, session_ref: str) -> PaymentSessionStatus:
        """Raises PaymentGatewayError when the gateway cannot be queried."""
        raise NotImplementedError

    @abstractmethod
    def expire_session(self, session_ref: str) -> None:
        """Close an open checkout session so it can no longer be paid.

        Raises PaymentGatewayError if the session could not be expired.
        """
        raise NotImplementedError

    @abstractmethod
    def refund(self, session_ref: str, idempotency_key: str) -> str:
        """Refund the full amount captured by the session. Returns the refund id.

        Raises PaymentGatewayError if the refund is not issued.
        """
        raise NotImplementedError

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature_header: str | None) -> PaymentEvent:
        """Verify and decode a push notification. Raises SignatureError on failure."""
        raise NotImplementedError
