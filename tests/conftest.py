from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from app.application.use_cases.booking import BookingUseCase, CreateBookingCommand
from app.application.use_cases.payment_lifecycle import PaymentLifecycleUseCase
from app.application.use_cases.reaper import StaleHoldReaper
from app.application.use_cases.side_effects import SideEffectDispatcher
from app.application.utils.duration_resolver import DurationResolver
from app.application.utils.rate_limiter import BookingRateLimiter
from app.domain.entities.booking import Booking, BookingStatus, TreatmentLine
from app.infrastructure.calendar.mock_calendar import MockCalendar
from app.infrastructure.catalog.treatment_data import TREATMENT_CATALOG
from app.infrastructure.email.mock_sender import MockEmailSender
from app.infrastructure.payments.mock_gateway import MockPaymentGateway
from app.infrastructure.store.memory_store import MemoryBookingStore


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
LONDON = ZoneInfo("Europe/London")
MANICURE = {"name": "Vinylux (normal nail polish) manicure", "price": 18}


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_booking(
    start: datetime,
    minutes: int = 30,
    *,
    booking_id: str | None = None,
    email: str = "a@x.com",
    status: BookingStatus = BookingStatus.PENDING,
    created_at: datetime | None = None,
    session_ref: str | None = None,
    calendar_ref: str | None = None,
) -> Booking:
    return Booking(
        id=booking_id or f"bk_{start.strftime('%d%H%M')}_{minutes}",
        name="Ada Lovelace",
        email=email,
        phone="07700 900123",
        start=start,
        end=start + timedelta(minutes=minutes),
        treatments=(TreatmentLine(name=MANICURE["name"], price=Decimal("18.00")),),
        total=Decimal("18.00"),
        created_at=created_at or NOW,
        status=status,
        payment_session_ref=session_ref,
        calendar_event_ref=calendar_ref,
    )


def create_command(start: datetime, email: str = "a@x.com", treatments=None, total=None) -> CreateBookingCommand:
    treatments = treatments if treatments is not None else [dict(MANICURE)]
    if total is None:
        total = sum(Decimal(str(t["price"])) for t in treatments)
    return CreateBookingCommand(
        name="Ada Lovelace",
        email=email,
        phone="07700 900123",
        start=start.isoformat(),
        treatments=treatments,
        total=total,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def store() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def calendar() -> MockCalendar:
    return MockCalendar()


@pytest.fixture
def email_sender() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway(webhook_secret="whsec_test")


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def dispatcher(store, calendar, email_sender, gateway, sleeps) -> SideEffectDispatcher:
    return SideEffectDispatcher(
        store=store,
        calendar=calendar,
        email=email_sender,
        payments=gateway,
        business_name="Cute Edinburgh",
        timezone=LONDON,
        manager_email="manager@example.com",
        sleep=sleeps.append,
    )


@pytest.fixture
def reaper(store, clock) -> StaleHoldReaper:
    return StaleHoldReaper(store=store, clock=clock, stale_hold_minutes=30)


@pytest.fixture
def booking_use_case(store, reaper, dispatcher, gateway, clock) -> BookingUseCase:
    return BookingUseCase(
        store=store,
        resolver=DurationResolver(TREATMENT_CATALOG),
        rate_limiter=BookingRateLimiter(store=store, clock=clock, max_bookings=3, window_hours=24),
        reaper=reaper,
        dispatcher=dispatcher,
        payments=gateway,
        timezone=LONDON,
        clock=clock,
    )


@pytest.fixture
def lifecycle(store, gateway, dispatcher, clock) -> PaymentLifecycleUseCase:
    return PaymentLifecycleUseCase(store=store, payments=gateway, dispatcher=dispatcher, clock=clock)
