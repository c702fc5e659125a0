from __future__ import annotations

from app.domain.entities.treatment_catalog import (
    CatalogTreatment,
    TreatmentCatalog,
    TreatmentOption,
    TreatmentSection,
)


TREATMENT_CATALOG = TreatmentCatalog(
    sections=(
        TreatmentSection(
            title="Vinylux Nail Treatments",
            treatments=(
                CatalogTreatment("Vinylux (normal nail polish) manicure", time="30 mins", price="£18"),
                CatalogTreatment("Vinylux French Manicure", time="45 mins", price="£20"),
                CatalogTreatment("Manicure with Top Coat Only", time=" 20 mins", price="£13"),
                CatalogTreatment("Acrylic nails extension", time="1 hr", price="£30"),
                CatalogTreatment("File & Polish", time="20 mins", price="£15"),
                CatalogTreatment("Acrylic", time="1 hr", price="£30"),
                CatalogTreatment("French File & Polish", time="30 mins", price="£25"),
                CatalogTreatment("Cut Down & File", time="15 mins", price="£10"),
                CatalogTreatment(
                    "Little Princess Nails (Under 11)",
                    children=(
                        TreatmentOption("File & Polish - 20 mins", "£13"),
                        TreatmentOption("Little Princess Minx - 30 mins", "£15"),
                    ),
                ),
            ),
        ),
        TreatmentSection(
            title="Shellac Nail Treatments",
            treatments=(
                CatalogTreatment("Shellac Manicure", time="30 mins", price="£22"),
                CatalogTreatment("Shellac toes", time="30 mins", price="£30"),
                CatalogTreatment("Shellac French Manicure", time="30 mins", price="£25"),
                CatalogTreatment(
                    "Shellac Removal",
                    children=(
                        TreatmentOption("15 mins", "£10"),
                        TreatmentOption("Shellac removal & shape - 20 mins", "£10"),
                    ),
                ),
                CatalogTreatment("Shellac Single Nail Repair", time="10 mins", price="£4"),
                CatalogTreatment("Shellac (hand & toes)", time="1 hr", price="£52"),
                CatalogTreatment("Shellac Manicure & Pedicure", time="1 hr", price="£52"),
            ),
        ),
        TreatmentSection(
            title="Waxing & Threading",
            treatments=(
                CatalogTreatment(
                    "Facial Waxing",
                    children=(
                        TreatmentOption("Wax Chin – 10 mins", "£5"),
                        TreatmentOption("Wax Lip – 10 mins", "£5"),
                        TreatmentOption("Wax Eyebrows – 15 mins", "£10"),
                        TreatmentOption("Wax Neck – 10 mins", "£6"),
                        TreatmentOption("Wax Sides – 10 mins", "£10"),
                        TreatmentOption("Wax Full Face – 20 mins", "£30"),
                    ),
                ),
                CatalogTreatment(
                    "Facial Threading",
                    children=(
                        TreatmentOption("Chin – 10 mins", "£4"),
                        TreatmentOption("Forehead – 10 mins", "£4"),
                        TreatmentOption("Upper Lip – 10 mins", "£4"),
                        TreatmentOption("Neck – 15 mins", "£5"),
                        TreatmentOption("Sides – 15 mins", "£8"),
                        TreatmentOption("Full Face – 30 mins", "£25"),
                    ),
                ),
                CatalogTreatment(
                    "Ladies' Waxing - Leg",
                    children=(
                        TreatmentOption("Half Leg – 30 mins", "£20"),
                        TreatmentOption("Full Leg – 45 mins", "£35"),
                    ),
                ),
                CatalogTreatment(
                    "Ladies' Waxing - Arm & Underarm",
                    children=(
                        TreatmentOption("Fingers – 10 mins", "£5"),
                        TreatmentOption("Underarm – 10 mins", "£10"),
                        TreatmentOption("Half Arm – 15 mins", "£15"),
                        TreatmentOption("Full Arm – 20 mins", "£20"),
                    ),
                ),
                CatalogTreatment("Ladies' Waxing - Full Body", time="1 hr 30 mins", price="£80"),
            ),
        ),
        TreatmentSection(
            title="Eyebrows & Eyelashes",
            treatments=(
                CatalogTreatment(
                    "Eyebrow & Eyelash Tinting",
                    children=(
                        TreatmentOption("10 mins", "£8"),
                        TreatmentOption("15 mins", "£15"),
                        TreatmentOption("20 mins", "£22"),
                    ),
                ),
                CatalogTreatment(
                    "Eyebrows shape & tint",
                    children=(
                        TreatmentOption("20 mins ", "£17"),
                        TreatmentOption("30 mins", "£28"),
                    ),
                ),
                CatalogTreatment("Eyebrow Shape & Eyelash Tint", time="30 mins", price="£22"),
                CatalogTreatment(
                    "Eyebrow & Eyelash Tint with Eyebrow Shape (package)", time="30 mins", price="£28"
                ),
                CatalogTreatment("Eyebrow Waxing", time="10 mins", price="£10"),
                CatalogTreatment("Eyebrow Threading", time="10 mins", price="£9"),
                CatalogTreatment("Eyebrow Shape and Henna", time="45 mins", price="£23"),
                CatalogTreatment("Lash Extensions - (Party Lashes) full set", time="20 mins", price="£22"),
            ),
        ),
    )
)
