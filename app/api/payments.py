from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query

from app.api.errors import unwrap
from app.api.schemas import BookingRefRequest, BookingSchema, CheckoutResponse, ConfirmPaymentRequest
from app.application.use_cases.booking import BookingUseCase
from app.application.use_cases.payment_lifecycle import PaymentLifecycleUseCase
from app.wiring.dependencies import get_booking_use_case, get_payment_lifecycle


router = APIRouter(prefix="/api")


@router.post("/checkout_sessions", response_model=CheckoutResponse)
def create_checkout_session(
    req: BookingRefRequest,
    origin: str = Header(""),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    session = unwrap(uc.start_checkout(req.booking_id, origin))
    return CheckoutResponse(url=session.url, session_id=session.session_ref)


@router.get("/checkout_sessions", response_model=BookingSchema)
def get_checkout_booking(
    session_id: str = Query(...),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    return BookingSchema.from_booking(unwrap(uc.get_by_session(session_id)))


@router.post("/stripe/confirm")
def confirm_payment(
    req: ConfirmPaymentRequest,
    uc: PaymentLifecycleUseCase = Depends(get_payment_lifecycle),
):
    booking = unwrap(uc.confirm_payment(req.session_id))
    return {"ok": True, "bookingId": booking.id, "status": booking.status.value}
