from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.domain.entities.booking import Booking


class CreateBookingRequest(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = Field("", validation_alias=AliasChoices("phone", "phonenumber"))
    start: str = Field("", validation_alias=AliasChoices("start", "date"))
    treatments: list[dict[str, Any]] = Field(default_factory=list)
    total: Any = None


class BookingRefRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_id: str = Field("", alias="bookingId")


class ConfirmPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field("", alias="sessionId")


class RecaptchaRequest(BaseModel):
    token: str = ""


class SlotSchema(BaseModel):
    start: datetime
    end: datetime


class TreatmentSchema(BaseModel):
    name: str
    price: float
    parent: str | None = None


class BookingSchema(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    start: datetime
    end: datetime
    treatments: list[TreatmentSchema]
    total: float
    status: str
    payment_session_ref: str | None = None
    calendar_event_ref: str | None = None
    created_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> BookingSchema:
        return cls(
            id=booking.id,
            name=booking.name,
            email=booking.email,
            phone=booking.phone,
            start=booking.start,
            end=booking.end,
            treatments=[
                TreatmentSchema(name=t.name, price=float(t.price), parent=t.parent) for t in booking.treatments
            ],
            total=float(booking.total),
            status=booking.status.value,
            payment_session_ref=booking.payment_session_ref,
            calendar_event_ref=booking.calendar_event_ref,
            created_at=booking.created_at,
        )


class CancelResponse(BaseModel):
    success: bool = True
    refunded: bool
    status: str


class CheckoutResponse(BaseModel):
    url: str | None
    session_id: str = Field(serialization_alias="sessionId")


class CleanupResponse(BaseModel):
    success: bool = True
    ended: int
    stale_holds: int
