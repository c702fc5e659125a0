from __future__ import annotations

import re
from collections.abc import Iterable

from app.domain.entities.treatment_catalog import TreatmentCatalog


DEFAULT_DURATION_MINUTES = 20

_MINUTES_RE = re.compile(r"(\d+)\s*(min|mins)", re.IGNORECASE)


def extract_minutes(text: str | None) -> int | None:
    """Return the first `<n> min(s)` value found in text, or None.

    Hour-only strings such as "1 hr" yield None on purpose; callers fall back
    to the default duration.
    """
    if not text:
        return None
    match = _MINUTES_RE.search(text)
    if not match:
        return None
    return int(match.group(1))


class DurationResolver:
    def __init__(self, catalog: TreatmentCatalog, default_minutes: int = DEFAULT_DURATION_MINUTES) -> None:
        self._catalog = catalog
        self._default_minutes = default_minutes

    def resolve(self, treatment_name: str) -> int:
        for treatment in self._catalog.iter_treatments():
            if treatment.name == treatment_name:
                return self._or_default(extract_minutes(treatment.time))
            for child in treatment.children:
                if child.name == treatment_name:
                    return self._or_default(extract_minutes(child.name))
        return self._default_minutes

    def _or_default(self, minutes: int | None) -> int:
        return self._default_minutes if minutes is None else minutes

    def total_minutes(self, treatment_names: Iterable[str]) -> int:
        return sum(self.resolve(name) for name in treatment_names)
