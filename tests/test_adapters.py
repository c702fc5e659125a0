"""
Tests for the third-party adapters, exercised without network access.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import smtplib
import time
from datetime import timedelta
from decimal import Decimal

import httplib2
import httpx
import pytest
import stripe
from googleapiclient.errors import HttpError

from app.core.config import settings
from app.application.exceptions import (
    BotVerificationError,
    CalendarRateLimitError,
    ExternalServiceError,
    PaymentGatewayError,
    SignatureError,
)
from app.infrastructure.calendar.google_calendar import GoogleCalendar, is_rate_limited
from app.infrastructure.payments.stripe_gateway import StripePaymentGateway, to_minor_units
from app.infrastructure.recaptcha.recaptcha_verifier import RecaptchaVerifier
from app.infrastructure.email.smtp_sender import SmtpEmailSender
from app.infrastructure.store.json_store import JsonBookingStore
from app.domain.entities.booking import BookingStatus, TreatmentLine
from tests.conftest import NOW, make_booking


WEBHOOK_SECRET = "whsec_unit"


def _stripe_header(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def stripe_gateway() -> StripePaymentGateway:
    return StripePaymentGateway(api_key="sk_test_unit", webhook_secret=WEBHOOK_SECRET, currency="GBP")


# --- Stripe ----------------------------------------------------------------


def test_minor_units():
    assert to_minor_units(Decimal("18.00")) == 1800
    assert to_minor_units(Decimal("12.50")) == 1250


def test_checkout_session_carries_booking_reference(stripe_gateway, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return stripe.checkout.Session.construct_from(
            {"id": "cs_unit", "url": "https://checkout.stripe.test/cs_unit"}, "sk_test_unit"
        )

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    booking = make_booking(NOW + timedelta(hours=1), booking_id="bk1")
    booking = type(booking)(
        **{
            **booking.__dict__,
            "treatments": (TreatmentLine("Wax Lip – 10 mins", Decimal("5.00"), parent="Facial Waxing"),),
        }
    )

    session = stripe_gateway.create_checkout_session(booking, "https://salon.example/")

    assert session.session_ref == "cs_unit"
    assert session.url == "https://checkout.stripe.test/cs_unit"
    assert captured["metadata"] == {"email": "a@x.com", "booking_id": "bk1"}
    assert captured["success_url"] == "https://salon.example/success?session_id={CHECKOUT_SESSION_ID}"
    item = captured["line_items"][0]["price_data"]
    assert item["currency"] == "gbp"
    assert item["unit_amount"] == 500
    assert item["product_data"]["name"] == "Facial Waxing - Wax Lip – 10 mins"


def test_refund_uses_payment_intent_and_idempotency_key(stripe_gateway, monkeypatch):
    captured = {}

    def fake_retrieve(session_ref, **kwargs):
        return stripe.checkout.Session.construct_from(
            {"id": session_ref, "payment_intent": "pi_unit", "payment_status": "paid"}, "sk_test_unit"
        )

    def fake_refund(**kwargs):
        captured.update(kwargs)
        return stripe.Refund.construct_from({"id": "re_unit"}, "sk_test_unit")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)
    monkeypatch.setattr(stripe.Refund, "create", fake_refund)

    assert stripe_gateway.refund("cs_unit", idempotency_key="refund-bk1") == "re_unit"
    assert captured["payment_intent"] == "pi_unit"
    assert captured["idempotency_key"] == "refund-bk1"


def test_refund_without_payment_intent_fails(stripe_gateway, monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session,
        "retrieve",
        lambda session_ref, **kwargs: stripe.checkout.Session.construct_from({"id": session_ref}, "sk_test_unit"),
    )

    with pytest.raises(PaymentGatewayError):
        stripe_gateway.refund("cs_unit", idempotency_key="refund-bk1")


def test_session_lookup_errors_become_gateway_errors(stripe_gateway, monkeypatch):
    def boom(session_ref, **kwargs):
        raise stripe.InvalidRequestError("No such checkout.session", param="id")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", boom)

    with pytest.raises(PaymentGatewayError):
        stripe_gateway.get_session_status("cs_missing")


def test_session_status_reads_metadata(stripe_gateway, monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session,
        "retrieve",
        lambda session_ref, **kwargs: stripe.checkout.Session.construct_from(
            {"id": session_ref, "payment_status": "paid", "metadata": {"booking_id": "bk1"}}, "sk_test_unit"
        ),
    )

    status = stripe_gateway.get_session_status("cs_unit")

    assert status.paid is True
    assert status.booking_id == "bk1"


def test_webhook_signature_verification(stripe_gateway):
    payload = json.dumps(
        {
            "id": "evt_unit",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_unit", "payment_status": "paid", "metadata": {"booking_id": "bk1"}}},
        }
    ).encode("utf-8")

    event = stripe_gateway.parse_webhook(payload, _stripe_header(payload))

    assert event.is_payment_completed
    assert event.booking_id == "bk1"
    assert event.session_ref == "cs_unit"

    with pytest.raises(SignatureError):
        stripe_gateway.parse_webhook(payload, _stripe_header(payload, secret="whsec_other"))
    with pytest.raises(SignatureError):
        stripe_gateway.parse_webhook(payload, None)
    with pytest.raises(SignatureError):
        stripe_gateway.parse_webhook(payload, _stripe_header(payload, timestamp=int(time.time()) - 3600))


def test_stripe_gateway_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    with pytest.raises(ValueError):
        StripePaymentGateway(api_key=None)


# --- Google Calendar -------------------------------------------------------


def _http_error(status: int, reason: str | None = None) -> HttpError:
    body = {"error": {"code": status, "errors": [{"reason": reason}] if reason else []}}
    return HttpError(httplib2.Response({"status": status}), json.dumps(body).encode("utf-8"))


def test_rate_limit_detection():
    assert is_rate_limited(_http_error(429))
    assert is_rate_limited(_http_error(403, "rateLimitExceeded"))
    assert is_rate_limited(_http_error(403, "userRateLimitExceeded"))
    assert not is_rate_limited(_http_error(403, "forbidden"))
    assert not is_rate_limited(_http_error(500))


class _Request:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def execute(self, num_retries=0):
        if self.error:
            raise self.error
        return self.result


def _bare_calendar() -> GoogleCalendar:
    calendar = GoogleCalendar.__new__(GoogleCalendar)
    calendar._calendar_id = "primary"
    calendar._timezone = "Europe/London"
    return calendar


def test_calendar_execute_maps_errors():
    calendar = _bare_calendar()

    assert calendar._execute(_Request(result={"id": "evt_1"}), "insert") == {"id": "evt_1"}
    with pytest.raises(CalendarRateLimitError):
        calendar._execute(_Request(error=_http_error(429)), "insert")
    with pytest.raises(ExternalServiceError) as exc_info:
        calendar._execute(_Request(error=_http_error(404, "notFound")), "patch")
    assert not isinstance(exc_info.value, CalendarRateLimitError)
    with pytest.raises(ExternalServiceError):
        calendar._execute(_Request(error=OSError("timed out")), "insert")


# --- reCAPTCHA -------------------------------------------------------------


def _verifier(response: httpx.Response) -> RecaptchaVerifier:
    transport = httpx.MockTransport(lambda request: response)
    return RecaptchaVerifier(
        secret="recaptcha_unit",
        verify_url="https://recaptcha.test/siteverify",
        min_score=0.5,
        client=httpx.Client(transport=transport),
    )


def test_recaptcha_score_threshold():
    assert _verifier(httpx.Response(200, json={"success": True, "score": 0.9})).verify("tok")
    assert not _verifier(httpx.Response(200, json={"success": True, "score": 0.5})).verify("tok")
    assert not _verifier(httpx.Response(200, json={"success": False, "error-codes": ["bad"]})).verify("tok")
    assert not _verifier(httpx.Response(200, json={"success": True, "score": 0.9})).verify("")


def test_recaptcha_http_failure_raises():
    with pytest.raises(BotVerificationError):
        _verifier(httpx.Response(503)).verify("tok")


# --- JSON store ------------------------------------------------------------


def test_json_store_round_trips_status_and_refs(tmp_path):
    store = JsonBookingStore(data_dir=str(tmp_path))
    store.reserve(make_booking(NOW + timedelta(hours=1), booking_id="bk1", session_ref="cs_1"))
    store.compare_and_set_status("bk1", BookingStatus.PENDING, BookingStatus.PAID, NOW)
    store.attach_calendar_event("bk1", "evt_1")

    reloaded = JsonBookingStore(data_dir=str(tmp_path)).get("bk1")

    assert reloaded.status == BookingStatus.PAID
    assert reloaded.payment_session_ref == "cs_1"
    assert reloaded.calendar_event_ref == "evt_1"
    assert reloaded.total == Decimal("18.00")
    assert reloaded.start == NOW + timedelta(hours=1)
    assert not (tmp_path / "bookings.json.tmp").exists()


def test_expire_session_calls_stripe(stripe_gateway, monkeypatch):
    expired = []
    monkeypatch.setattr(
        stripe.checkout.Session,
        "expire",
        lambda session_ref, **kwargs: expired.append(session_ref),
    )

    stripe_gateway.expire_session("cs_unit")

    assert expired == ["cs_unit"]


def test_expire_session_errors_become_gateway_errors(stripe_gateway, monkeypatch):
    def boom(session_ref, **kwargs):
        raise stripe.InvalidRequestError("Only open sessions can be expired", param="session")

    monkeypatch.setattr(stripe.checkout.Session, "expire", boom)

    with pytest.raises(PaymentGatewayError):
        stripe_gateway.expire_session("cs_unit")


def test_refund_of_already_refunded_charge_is_idempotent(stripe_gateway, monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session,
        "retrieve",
        lambda session_ref, **kwargs: stripe.checkout.Session.construct_from(
            {"id": session_ref, "payment_intent": "pi_unit"}, "sk_test_unit"
        ),
    )

    def already_refunded(**kwargs):
        raise stripe.InvalidRequestError("Charge has already been refunded.", param=None, code="charge_already_refunded")

    monkeypatch.setattr(stripe.Refund, "create", already_refunded)

    assert stripe_gateway.refund("cs_unit", idempotency_key="refund-bk1") == "already_refunded"


# --- SMTP ------------------------------------------------------------------


class _FakeSMTP:
    instances: list["_FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.closed = False
        self.sent = []
        self.fail_starttls = False
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def starttls(self, context=None):
        if self.fail_starttls:
            raise smtplib.SMTPNotSupportedError("STARTTLS extension not supported by server.")

    def login(self, username, password):
        pass

    def sendmail(self, sender, recipients, message):
        self.sent.append((sender, recipients))


def test_smtp_sender_delivers_over_starttls(monkeypatch):
    _FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)
    sender = SmtpEmailSender(host="smtp.test", port=587, username="u", password="p", from_address="shop@x.com")

    sender.send("a@x.com", "Hello", "<p>hi</p>")

    server = _FakeSMTP.instances[0]
    assert server.sent == [("shop@x.com", ["a@x.com"])]
    assert server.closed


def test_smtp_connection_is_closed_when_starttls_fails(monkeypatch):
    class NoTls(_FakeSMTP):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.fail_starttls = True

    _FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", NoTls)
    sender = SmtpEmailSender(host="smtp.test", port=587, from_address="shop@x.com")

    with pytest.raises(ExternalServiceError):
        sender.send("a@x.com", "Hello", "<p>hi</p>")

    assert _FakeSMTP.instances[0].closed
    assert _FakeSMTP.instances[0].sent == []
