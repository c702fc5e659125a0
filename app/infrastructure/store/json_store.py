from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from app.domain.entities.booking import Booking, BookingStatus, TreatmentLine
from app.infrastructure.store.memory_store import MemoryBookingStore


logger = logging.getLogger(__name__)


class JsonBookingStore(MemoryBookingStore):
    """Durable single-writer store: the whole book is rewritten atomically on every mutation."""

    def __init__(self, data_dir: str = "./data") -> None:
        super().__init__()
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._data_dir / "bookings.json"
        with self._lock:
            self._bookings = self._load()

    def _load(self) -> dict[str, Booking]:
        """Load bookings from the JSON file, return an empty book if missing."""
        if not self._file_path.exists():
            return {}

        with open(self._file_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        bookings: dict[str, Booking] = {}
        for raw in data.get("bookings", []):
            booking = self._deserialize_booking(raw)
            bookings[booking.id] = booking
        logger.info("Loaded bookings", extra={"count": len(bookings)})
        return bookings

    def _persist(self) -> None:
        """Save all bookings to the JSON file atomically."""
        temp_path = self._file_path.with_suffix(".json.tmp")
        data = {
            "version": 1,
            "bookings": [self._serialize_booking(b) for b in self._bookings.values()],
        }

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise

    def _serialize_booking(self, booking: Booking) -> dict[str, Any]:
        return {
            "id": booking.id,
            "name": booking.name,
            "email": booking.email,
            "phone": booking.phone,
            "start": booking.start.isoformat(),
            "end": booking.end.isoformat(),
            "treatments": [
                {"name": t.name, "price": str(t.price), "parent": t.parent} for t in booking.treatments
            ],
            "total": str(booking.total),
            "status": booking.status.value,
            "payment_session_ref": booking.payment_session_ref,
            "calendar_event_ref": booking.calendar_event_ref,
            "created_at": booking.created_at.isoformat(),
            "updated_at": booking.updated_at.isoformat() if booking.updated_at else None,
        }

    def _deserialize_booking(self, data: dict[str, Any]) -> Booking:
        updated_at = data.get("updated_at")
        return Booking(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            phone=data["phone"],
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            treatments=tuple(
                TreatmentLine(name=t["name"], price=Decimal(t["price"]), parent=t.get("parent"))
                for t in data.get("treatments", [])
            ),
            total=Decimal(data["total"]),
            status=BookingStatus(data.get("status", BookingStatus.PENDING.value)),
            payment_session_ref=data.get("payment_session_ref"),
            calendar_event_ref=data.get("calendar_event_ref"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
