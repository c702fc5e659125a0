from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.application.dto.outcome import ErrorKind
from app.application.use_cases.payment_lifecycle import PaymentLifecycleUseCase
from app.wiring.dependencies import get_payment_lifecycle


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/stripe/webhook")
async def stripe_webhook(
    request: Request,
    uc: PaymentLifecycleUseCase = Depends(get_payment_lifecycle),
) -> JSONResponse:
    body = await request.body()
    signature = request.headers.get("Stripe-Signature")

    try:
        outcome = await run_in_threadpool(uc.handle_webhook, body, signature)
    except Exception as e:
        logger.exception("Fatal error in webhook handler", extra={"error": str(e)})
        return JSONResponse({"error": "Server error"}, status_code=500)

    if outcome.error == ErrorKind.SIGNATURE_ERROR:
        return JSONResponse({"error": "Invalid signature"}, status_code=400)
    if outcome.error in (ErrorKind.SERVER_ERROR, ErrorKind.REFUND_FAILED):
        # Non-2xx makes the gateway redeliver.
        return JSONResponse({"error": outcome.message or "Server error"}, status_code=500)
    if not outcome.ok:
        # Unknown or withdrawn bookings are acknowledged; retrying cannot fix them.
        logger.warning("Webhook acknowledged without transition", extra={"reason": outcome.error.value})
    return JSONResponse({"received": True})
