from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException

from app.api.errors import unwrap
from app.api.schemas import (
    BookingRefRequest,
    BookingSchema,
    CancelResponse,
    CleanupResponse,
    CreateBookingRequest,
    RecaptchaRequest,
    SlotSchema,
)
from app.application.exceptions import BotVerificationError
from app.application.ports.bot_verifier import BotVerifierPort
from app.application.use_cases.booking import BookingUseCase, CreateBookingCommand
from app.application.use_cases.payment_lifecycle import PaymentLifecycleUseCase
from app.application.use_cases.reaper import StaleHoldReaper
from app.core.config import settings
from app.wiring.dependencies import (
    get_booking_use_case,
    get_bot_verifier,
    get_payment_lifecycle,
    get_reaper,
)


router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


@router.get("/appointments", response_model=list[SlotSchema])
def list_appointments(uc: BookingUseCase = Depends(get_booking_use_case)):
    return [SlotSchema(start=slot.start, end=slot.end) for slot in uc.list_slots()]


@router.get("/appointments/{booking_id}", response_model=BookingSchema)
def get_appointment(booking_id: str, uc: BookingUseCase = Depends(get_booking_use_case)):
    return BookingSchema.from_booking(unwrap(uc.get(booking_id)))


@router.post("/appointments", response_model=BookingSchema, status_code=201)
def create_appointment(req: CreateBookingRequest, uc: BookingUseCase = Depends(get_booking_use_case)):
    outcome = uc.create(
        CreateBookingCommand(
            name=req.name,
            email=req.email,
            phone=req.phone,
            start=req.start,
            treatments=req.treatments,
            total=req.total,
        )
    )
    return BookingSchema.from_booking(unwrap(outcome))


@router.post("/cancelbooking", response_model=CancelResponse)
def cancel_booking(req: BookingRefRequest, uc: PaymentLifecycleUseCase = Depends(get_payment_lifecycle)):
    result = unwrap(uc.cancel(req.booking_id))
    return CancelResponse(refunded=result.refunded, status=result.status.value)


@router.post("/recaptcha")
def verify_recaptcha(req: RecaptchaRequest, verifier: BotVerifierPort = Depends(get_bot_verifier)):
    try:
        return {"success": verifier.verify(req.token)}
    except BotVerificationError:
        return {"success": False}


@router.get("/cleanup_old_bookings", response_model=CleanupResponse)
def cleanup_old_bookings(
    authorization: str | None = Header(None),
    reaper: StaleHoldReaper = Depends(get_reaper),
):
    expected = f"Bearer {settings.CRON_SECRET}" if settings.CRON_SECRET else None
    if not expected or not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")

    result = reaper.run()
    logger.info("Cleanup job finished", extra={"ended": result.ended, "stale_holds": result.stale_holds})
    return CleanupResponse(ended=result.ended, stale_holds=result.stale_holds)
