from __future__ import annotations

from fastapi import HTTPException

from app.application.dto.outcome import ErrorKind, Outcome


ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.RATE_LIMIT_EXCEEDED: 403,
    ErrorKind.SLOT_CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_PAID: 400,
    ErrorKind.MISSING_BOOKING_REF: 400,
    ErrorKind.PAYMENT_ERROR: 502,
    ErrorKind.REFUND_FAILED: 502,
    ErrorKind.SIGNATURE_ERROR: 400,
    ErrorKind.SERVER_ERROR: 500,
}


def unwrap(outcome: Outcome):
    """Return the outcome's value or raise the HTTPException matching its error kind."""
    if outcome.ok:
        return outcome.value
    status_code = ERROR_STATUS_CODES.get(outcome.error, 500)
    raise HTTPException(
        status_code=status_code,
        detail={"error": outcome.error.value, "message": outcome.message},
    )
