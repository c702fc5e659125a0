"""
HTTP surface tests. Use cases are wired against in-memory adapters through
FastAPI dependency overrides.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.domain.entities.booking import BookingStatus
from app.infrastructure.payments.mock_gateway import sign_payload
from app.infrastructure.recaptcha.mock_verifier import MockBotVerifier
from app.main import app
from app.wiring.dependencies import get_booking_use_case, get_bot_verifier, get_payment_lifecycle, get_reaper
from tests.conftest import MANICURE, NOW, make_booking


TEN = NOW.replace(hour=10)


@pytest.fixture
def client(booking_use_case, lifecycle, reaper):
    app.dependency_overrides[get_booking_use_case] = lambda: booking_use_case
    app.dependency_overrides[get_payment_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_reaper] = lambda: reaper
    app.dependency_overrides[get_bot_verifier] = lambda: MockBotVerifier()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _booking_body(start=TEN, email="ada@example.com", **overrides):
    body = {
        "name": "Ada Lovelace",
        "email": email,
        "phonenumber": "07700 900123",
        "date": start.isoformat(),
        "treatments": [dict(MANICURE)],
        "total": 18,
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_and_fetch_booking(client):
    resp = client.post("/api/appointments", json=_booking_body())

    assert resp.status_code == 201
    created = resp.json()
    assert created["status"] == "PENDING"
    assert created["total"] == 18.0
    assert created["calendar_event_ref"] == "mock_event_1"

    fetched = client.get(f"/api/appointments/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["email"] == "ada@example.com"


def test_list_exposes_only_intervals(client):
    client.post("/api/appointments", json=_booking_body())

    slots = client.get("/api/appointments").json()

    assert len(slots) == 1
    assert set(slots[0]) == {"start", "end"}


def test_conflict_returns_409(client):
    assert client.post("/api/appointments", json=_booking_body()).status_code == 201

    resp = client.post(
        "/api/appointments",
        json=_booking_body(start=TEN + timedelta(minutes=15), email="other@example.com"),
    )

    assert resp.status_code == 409
    assert resp.json()["detail"]["error"] == "slot_conflict"


def test_validation_errors_return_400(client):
    missing = client.post("/api/appointments", json=_booking_body(name=""))
    malformed = client.post("/api/appointments", content=b"{not json", headers={"Content-Type": "application/json"})

    assert missing.status_code == 400
    assert missing.json()["detail"]["message"] == "All fields required."
    assert malformed.status_code == 400
    assert malformed.json()["detail"]["error"] == "validation_error"


def test_rate_limit_returns_403(client, store):
    for i in range(3):
        store.reserve(make_booking(TEN + timedelta(hours=i), booking_id=f"r{i}", email="ada@example.com"))

    resp = client.post("/api/appointments", json=_booking_body(start=TEN + timedelta(days=1)))

    assert resp.status_code == 403
    assert resp.json()["detail"]["error"] == "rate_limit_exceeded"


def test_unknown_booking_returns_404(client):
    assert client.get("/api/appointments/nope").status_code == 404


def test_checkout_confirm_and_cancel_flow(client, gateway, store):
    booking_id = client.post("/api/appointments", json=_booking_body()).json()["id"]

    checkout = client.post(
        "/api/checkout_sessions",
        json={"bookingId": booking_id},
        headers={"Origin": "https://salon.example"},
    )
    assert checkout.status_code == 200
    session_id = checkout.json()["sessionId"]
    assert checkout.json()["url"].startswith("https://salon.example/")

    unpaid = client.post("/api/stripe/confirm", json={"sessionId": session_id})
    assert unpaid.status_code == 400
    assert unpaid.json()["detail"]["error"] == "not_paid"

    gateway.mark_paid(session_id)
    confirmed = client.post("/api/stripe/confirm", json={"sessionId": session_id})
    assert confirmed.json() == {"ok": True, "bookingId": booking_id, "status": "PAID"}

    lookup = client.get("/api/checkout_sessions", params={"session_id": session_id})
    assert lookup.json()["id"] == booking_id

    canceled = client.post("/api/cancelbooking", json={"bookingId": booking_id})
    assert canceled.json() == {"success": True, "refunded": True, "status": "REFUNDED"}
    assert store.get(booking_id).status == BookingStatus.REFUNDED


def test_refund_failure_returns_502(client, gateway, store):
    store.reserve(make_booking(TEN, booking_id="paid", status=BookingStatus.PAID, session_ref="cs_1"))
    gateway.register_session("cs_1", "paid", paid=True)
    gateway.fail_refunds = True

    resp = client.post("/api/cancelbooking", json={"bookingId": "paid"})

    assert resp.status_code == 502
    assert resp.json()["detail"]["error"] == "refund_failed"


def test_webhook_signature_and_ack(client, store, gateway):
    store.reserve(make_booking(TEN, booking_id="bk1"))
    payload = (
        b'{"id": "evt_1", "type": "checkout.session.completed", "data": {"object": '
        b'{"id": "cs_1", "payment_status": "paid", "metadata": {"booking_id": "bk1"}}}}'
    )

    bad = client.post("/api/stripe/webhook", content=payload, headers={"Stripe-Signature": "sha256=bogus"})
    assert bad.status_code == 400
    assert store.get("bk1").status == BookingStatus.PENDING

    good = client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, "whsec_test")},
    )
    assert good.status_code == 200
    assert good.json() == {"received": True}
    assert store.get("bk1").status == BookingStatus.PAID
    assert store.get("bk1").payment_session_ref == "cs_1"


def test_webhook_for_unknown_booking_is_acknowledged(client):
    payload = b'{"type": "checkout.session.completed", "data": {"object": {"id": "cs_x", "metadata": {"booking_id": "x"}}}}'

    resp = client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, "whsec_test")},
    )

    assert resp.status_code == 200


def test_cleanup_requires_cron_secret(client, store, clock, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    store.reserve(make_booking(NOW - timedelta(hours=2), booking_id="old"))

    assert client.get("/api/cleanup_old_bookings").status_code == 401
    assert client.get("/api/cleanup_old_bookings", headers={"Authorization": "Bearer nope"}).status_code == 401

    resp = client.get("/api/cleanup_old_bookings", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "ended": 1, "stale_holds": 0}


def test_recaptcha(client):
    assert client.post("/api/recaptcha", json={"token": "abc"}).json() == {"success": True}


def test_webhook_returns_500_when_late_payment_cannot_be_refunded(client, store, gateway):
    store.reserve(make_booking(TEN, booking_id="bk1", status=BookingStatus.CANCELED, session_ref="cs_1"))
    gateway.fail_refunds = True
    payload = (
        b'{"type": "checkout.session.completed", "data": {"object": '
        b'{"id": "cs_1", "payment_status": "paid", "metadata": {"booking_id": "bk1"}}}}'
    )

    resp = client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, "whsec_test")},
    )

    assert resp.status_code == 500

    gateway.fail_refunds = False
    retried = client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, "whsec_test")},
    )
    assert retried.status_code == 200
    assert gateway.refund_calls == [("cs_1", "refund-bk1")]


def test_cancelled_slot_is_no_longer_listed(client):
    booking_id = client.post("/api/appointments", json=_booking_body()).json()["id"]

    client.post("/api/cancelbooking", json={"bookingId": booking_id})

    assert client.get("/api/appointments").json() == []
