class ExternalServiceError(RuntimeError):
    """Raised when a best-effort collaborator (email, calendar) fails."""
    pass


class CalendarRateLimitError(ExternalServiceError):
    """Raised when the calendar provider throttles the caller; safe to retry."""
    pass


class PaymentGatewayError(RuntimeError):
    """Raised when the payment gateway rejects or fails a request (refund, session lookup)."""
    pass


class SignatureError(ValueError):
    """Raised when a payment webhook payload fails authenticity verification."""
    pass


class BotVerificationError(ExternalServiceError):
    """Raised when the bot-verification gate cannot be reached."""
    pass
