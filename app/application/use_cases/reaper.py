from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from app.application.ports.booking_store import BookingStorePort


@dataclass(frozen=True)
class ReapResult:
    ended: int
    stale_holds: int

    @property
    def total(self) -> int:
        return self.ended + self.stale_holds


class StaleHoldReaper:
    """Purges bookings whose slot has passed and PENDING holds abandoned at checkout."""

    def __init__(
        self,
        store: BookingStorePort,
        clock: Callable[[], datetime],
        stale_hold_minutes: int = 30,
    ) -> None:
        self._store = store
        self._clock = clock
        self._stale_hold = timedelta(minutes=stale_hold_minutes)
        self._logger = logging.getLogger(__name__)

    def run(self) -> ReapResult:
        now = self._clock()
        ended = self._store.delete_ended_before(now)
        stale = self._store.delete_pending_created_before(now - self._stale_hold)
        result = ReapResult(ended=ended, stale_holds=stale)
        if result.total:
            self._logger.info("Reaped bookings", extra={"ended": ended, "stale_holds": stale})
        return result

    def run_quietly(self) -> None:
        """Opportunistic cleanup on the request path; a failure must not fail the request."""
        try:
            self.run()
        except Exception as e:
            self._logger.exception("Reaper failed", extra={"error": str(e)})
