from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


CHECKOUT_COMPLETED = "checkout.session.completed"


class PaymentEvent(BaseModel):
    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_payment_completed(self) -> bool:
        return self.type == CHECKOUT_COMPLETED

    @property
    def session(self) -> dict[str, Any]:
        return self.data.get("object") or {}

    @property
    def session_ref(self) -> str | None:
        value = self.session.get("id")
        return str(value) if value else None

    @property
    def booking_id(self) -> str | None:
        metadata = self.session.get("metadata") or {}
        value = metadata.get("booking_id")
        return str(value) if value else None
