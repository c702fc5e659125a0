from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TreatmentOption:
    name: str  # display name, usually embeds a duration hint ("Wax Lip – 10 mins")
    price: str


@dataclass(frozen=True)
class CatalogTreatment:
    name: str
    time: str | None = None
    price: str | None = None
    children: tuple[TreatmentOption, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TreatmentSection:
    title: str
    treatments: tuple[CatalogTreatment, ...]


@dataclass(frozen=True)
class TreatmentCatalog:
    sections: tuple[TreatmentSection, ...]

    def iter_treatments(self):
        for section in self.sections:
            yield from section.treatments
