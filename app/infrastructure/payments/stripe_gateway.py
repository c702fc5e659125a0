from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from app.application.dto.payment_event import PaymentEvent
from app.application.exceptions import PaymentGatewayError, SignatureError
from app.application.ports.payment_gateway import CheckoutSession, PaymentGatewayPort, PaymentSessionStatus
from app.core.config import settings
from app.domain.entities.booking import Booking


def _field(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def to_minor_units(amount) -> int:
    return int((amount * 100).to_integral_value())


class StripePaymentGateway(PaymentGatewayPort):
    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
    ) -> None:
        self._api_key = api_key or settings.STRIPE_SECRET_KEY
        self._webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self._currency = (currency or settings.CURRENCY).lower()
        self._logger = logging.getLogger(__name__)

        if not self._api_key:
            raise ValueError("STRIPE_SECRET_KEY is required for Stripe payments")
        stripe.max_network_retries = 2

    def create_checkout_session(self, booking: Booking, origin: str) -> CheckoutSession:
        base = origin.rstrip("/")
        line_items = [
            {
                "price_data": {
                    "currency": self._currency,
                    "product_data": {"name": t.label},
                    "unit_amount": to_minor_units(t.price),
                },
                "quantity": 1,
            }
            for t in booking.treatments
        ]
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                payment_method_types=["card"],
                line_items=line_items,
                mode="payment",
                success_url=f"{base}/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base}/?canceled=true",
                customer_email=booking.email,
                metadata={"email": booking.email, "booking_id": booking.id},
            )
        except stripe.StripeError as e:
            self._logger.error("Stripe session creation failed", extra={"booking_id": booking.id, "error": str(e)})
            raise PaymentGatewayError(str(e)) from e

        self._logger.info("Stripe session created", extra={"booking_id": booking.id, "session_ref": session.id})
        return CheckoutSession(session_ref=session.id, url=_field(session, "url"))

    def get_session_status(self, session_ref: str) -> PaymentSessionStatus:
        session = self._retrieve_session(session_ref)
        metadata = _field(session, "metadata")
        booking_id = _field(metadata, "booking_id")
        return PaymentSessionStatus(
            session_ref=session_ref,
            paid=_field(session, "payment_status") == "paid",
            booking_id=str(booking_id) if booking_id else None,
            payment_ref=_field(session, "payment_intent"),
            open=_field(session, "status") == "open",
        )

    def expire_session(self, session_ref: str) -> None:
        try:
            stripe.checkout.Session.expire(session_ref, api_key=self._api_key)
        except stripe.StripeError as e:
            self._logger.error("Stripe session expiry failed", extra={"session_ref": session_ref, "error": str(e)})
            raise PaymentGatewayError(str(e)) from e
        self._logger.info("Stripe session expired", extra={"session_ref": session_ref})

    def refund(self, session_ref: str, idempotency_key: str) -> str:
        session = self._retrieve_session(session_ref)
        payment_intent = _field(session, "payment_intent")
        if not payment_intent or not isinstance(payment_intent, str):
            raise PaymentGatewayError("Invalid payment intent")

        try:
            refund = stripe.Refund.create(
                api_key=self._api_key,
                payment_intent=payment_intent,
                idempotency_key=idempotency_key,
            )
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "charge_already_refunded":
                self._logger.info("Payment already refunded", extra={"session_ref": session_ref})
                return "already_refunded"
            raise PaymentGatewayError(str(e)) from e
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return refund.id

    def parse_webhook(self, payload: bytes, signature_header: str | None) -> PaymentEvent:
        if not signature_header:
            raise SignatureError("Missing Stripe-Signature header")
        if not self._webhook_secret:
            self._logger.error("Missing webhook secret for signature verification")
            raise SignatureError("Webhook secret not configured")

        try:
            stripe.Webhook.construct_event(payload, signature_header, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise SignatureError(str(e)) from e
        except ValueError as e:
            raise SignatureError(f"Invalid payload: {e}") from e

        return PaymentEvent.model_validate(json.loads(payload.decode("utf-8")))

    def _retrieve_session(self, session_ref: str):
        try:
            return stripe.checkout.Session.retrieve(session_ref, api_key=self._api_key)
        except stripe.StripeError as e:
            self._logger.error("Stripe session retrieval failed", extra={"session_ref": session_ref, "error": str(e)})
            raise PaymentGatewayError(str(e)) from e
