from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.bot_verifier import BotVerifierPort
from app.application.ports.calendar import CalendarPort
from app.application.ports.email_sender import EmailSenderPort
from app.application.ports.payment_gateway import PaymentGatewayPort
from app.application.use_cases.booking import BookingUseCase
from app.application.use_cases.payment_lifecycle import PaymentLifecycleUseCase
from app.application.use_cases.reaper import StaleHoldReaper
from app.application.use_cases.side_effects import SideEffectDispatcher
from app.application.utils.date_parser import utc_now
from app.application.utils.duration_resolver import DurationResolver
from app.application.utils.rate_limiter import BookingRateLimiter
from app.infrastructure.calendar.google_calendar import GoogleCalendar
from app.infrastructure.calendar.mock_calendar import MockCalendar
from app.infrastructure.catalog.treatment_data import TREATMENT_CATALOG
from app.infrastructure.email.mock_sender import MockEmailSender
from app.infrastructure.email.smtp_sender import SmtpEmailSender
from app.infrastructure.payments.mock_gateway import MockPaymentGateway
from app.infrastructure.payments.stripe_gateway import StripePaymentGateway
from app.infrastructure.recaptcha.mock_verifier import MockBotVerifier
from app.infrastructure.recaptcha.recaptcha_verifier import RecaptchaVerifier
from app.infrastructure.store.json_store import JsonBookingStore
from app.infrastructure.store.memory_store import MemoryBookingStore


logger = logging.getLogger(__name__)


def _is_dev() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


@lru_cache
def get_booking_store() -> BookingStorePort:
    if settings.STORE_PROVIDER.lower() == "memory":
        return MemoryBookingStore()
    return JsonBookingStore(data_dir=settings.DATA_DIR)


@lru_cache
def get_calendar() -> CalendarPort:
    if not settings.GCAL_CALENDAR_ID:
        if not _is_dev():
            logger.warning("GCAL_CALENDAR_ID missing; calendar records are disabled")
        return MockCalendar()
    return GoogleCalendar()


@lru_cache
def get_email_sender() -> EmailSenderPort:
    if not settings.SMTP_HOST:
        if not _is_dev():
            logger.warning("SMTP_HOST missing; emails will not be delivered")
        return MockEmailSender()
    return SmtpEmailSender()


@lru_cache
def get_payment_gateway() -> PaymentGatewayPort:
    if not settings.STRIPE_SECRET_KEY:
        if _is_dev():
            logger.info("Using MockPaymentGateway (STRIPE_SECRET_KEY missing, ENV=dev/local)")
            return MockPaymentGateway()
        raise ValueError("STRIPE_SECRET_KEY is required to take payments.")
    return StripePaymentGateway()


@lru_cache
def get_bot_verifier() -> BotVerifierPort:
    if not settings.RECAPTCHA_SECRET:
        if _is_dev():
            return MockBotVerifier()
        raise ValueError("RECAPTCHA_SECRET is required for bot verification.")
    return RecaptchaVerifier()


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_dispatcher() -> SideEffectDispatcher:
    return SideEffectDispatcher(
        store=get_booking_store(),
        calendar=get_calendar(),
        email=get_email_sender(),
        payments=get_payment_gateway(),
        business_name=settings.BUSINESS_NAME,
        timezone=get_timezone(),
        manager_email=settings.MANAGER_EMAIL,
        calendar_max_attempts=settings.CALENDAR_MAX_ATTEMPTS,
        calendar_backoff_seconds=settings.CALENDAR_BACKOFF_SECONDS,
        calendar_backoff_cap_seconds=settings.CALENDAR_BACKOFF_CAP_SECONDS,
    )


@lru_cache
def get_reaper() -> StaleHoldReaper:
    return StaleHoldReaper(
        store=get_booking_store(),
        clock=utc_now,
        stale_hold_minutes=settings.STALE_HOLD_MINUTES,
    )


@lru_cache
def get_booking_use_case() -> BookingUseCase:
    store = get_booking_store()
    return BookingUseCase(
        store=store,
        resolver=DurationResolver(TREATMENT_CATALOG, default_minutes=settings.DEFAULT_DURATION_MINUTES),
        rate_limiter=BookingRateLimiter(
            store=store,
            clock=utc_now,
            max_bookings=settings.MAX_BOOKINGS_PER_DAY,
            window_hours=settings.RATE_WINDOW_HOURS,
        ),
        reaper=get_reaper(),
        dispatcher=get_dispatcher(),
        payments=get_payment_gateway(),
        timezone=get_timezone(),
        clock=utc_now,
    )


@lru_cache
def get_payment_lifecycle() -> PaymentLifecycleUseCase:
    return PaymentLifecycleUseCase(
        store=get_booking_store(),
        payments=get_payment_gateway(),
        dispatcher=get_dispatcher(),
        clock=utc_now,
    )
