from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BUSINESS_NAME: str = "Cute Edinburgh"
    BUSINESS_TIMEZONE: str = "Europe/London"
    BUSINESS_EMAIL: str = "bookings@example.com"
    MANAGER_EMAIL: str | None = None

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    SMTP_TIMEOUT_SECONDS: float = 10.0

    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    CURRENCY: str = "gbp"

    GCAL_CLIENT_EMAIL: str | None = None
    GCAL_PRIVATE_KEY: str | None = None
    GCAL_CALENDAR_ID: str | None = None

    RECAPTCHA_SECRET: str | None = None
    RECAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"
    RECAPTCHA_MIN_SCORE: float = 0.0

    CRON_SECRET: str | None = None

    STORE_PROVIDER: str = "json"
    DATA_DIR: str = "./data"

    MAX_BOOKINGS_PER_DAY: int = 3
    RATE_WINDOW_HOURS: int = 24
    STALE_HOLD_MINUTES: int = 30
    DEFAULT_DURATION_MINUTES: int = 20

    CALENDAR_MAX_ATTEMPTS: int = 3
    CALENDAR_BACKOFF_SECONDS: float = 0.5
    CALENDAR_BACKOFF_CAP_SECONDS: float = 4.0


settings = Settings()
