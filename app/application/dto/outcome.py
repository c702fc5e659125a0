from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar


T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    SLOT_CONFLICT = "slot_conflict"
    NOT_FOUND = "not_found"
    NOT_PAID = "not_paid"
    MISSING_BOOKING_REF = "missing_booking_ref"
    PAYMENT_ERROR = "payment_error"
    REFUND_FAILED = "refund_failed"
    SIGNATURE_ERROR = "signature_error"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of a booking operation: either `value` or `error` is set."""

    value: T | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> Outcome[T]:
        return cls(error=error, message=message)
