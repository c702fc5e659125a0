#!/usr/bin/env python3
from __future__ import annotations

import argparse
import hashlib
import hmac
import json
import time
from typing import Any

import httpx
from httpx import ConnectError


def build_payload(session_id: str, booking_id: str, payment_status: str) -> dict[str, Any]:
    now = int(time.time())
    return {
        "id": f"evt_local_{now}",
        "object": "event",
        "type": "checkout.session.completed",
        "created": now,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": payment_status,
                "metadata": {"booking_id": booking_id},
            }
        },
    }


def stripe_signature(secret: str, body: bytes) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def mock_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a signed checkout.session.completed webhook")
    parser.add_argument("--url", default="http://127.0.0.1:8001/api/stripe/webhook")
    parser.add_argument("--booking", required=True, help="Booking id to mark as paid")
    parser.add_argument("--session", default="cs_local_test")
    parser.add_argument("--payment-status", default="paid")
    parser.add_argument("--secret", default="mock_webhook_secret", help="Webhook signing secret")
    parser.add_argument("--mock", action="store_true", help="Sign for the mock gateway used in dev")
    args = parser.parse_args()

    body = json.dumps(build_payload(args.session, args.booking, args.payment_status)).encode("utf-8")
    sign = mock_signature if args.mock else stripe_signature
    headers = {"Content-Type": "application/json", "Stripe-Signature": sign(args.secret, body)}

    try:
        resp = httpx.post(args.url, content=body, headers=headers, timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn app.main:app --reload --port 8001")
        return

    print(resp.status_code)
    if resp.text:
        print(resp.text)


if __name__ == "__main__":
    main()
